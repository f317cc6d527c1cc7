"""Process-local response cache for job API searches.

Entries expire lazily after ``ttl_seconds``. When a put pushes the store past
``max_entries``, the ``evict_batch`` oldest entries (by fetch time) are dropped
in one go. Concurrent puts to the same key replace the whole entry, so the
last writer wins and readers never see a partial entry.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from jobquota.core.config import CacheConfig
from jobquota.core.schemas import JobListing, SearchRequest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheEntry:
    data: list[JobListing]
    fetched_at: float


def cache_key(request: SearchRequest) -> str:
    """Derive the cache key. Callers must normalize the request first."""
    return (
        f"{request.query}_{request.location}_{request.employment_type}_{request.page}"
    ).lower()


class ResponseCache:
    """Bounded TTL cache keyed by normalized SearchRequest.

    Usage::

        cache = ResponseCache(CacheConfig())
        hit = cache.get(request)
        if hit is None:
            listings = await fetch(request)
            cache.put(request, listings)
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, request: SearchRequest) -> list[JobListing] | None:
        """Return cached listings, or None on a miss or an expired entry."""
        entry = self._entries.get(cache_key(request))
        if entry is None:
            return None
        if self._clock() - entry.fetched_at >= self._config.ttl_seconds:
            return None
        logger.debug("Cache hit for '%s'", request.query)
        return list(entry.data)

    def put(self, request: SearchRequest, listings: list[JobListing]) -> None:
        """Store listings under the request's key, then enforce the size bound."""
        self._entries[cache_key(request)] = CacheEntry(
            data=list(listings), fetched_at=self._clock(),
        )
        if len(self._entries) > self._config.max_entries:
            self._evict_oldest()

    def clear(self) -> None:
        self._entries.clear()

    def _evict_oldest(self) -> None:
        # sorted() is stable: equal timestamps evict in insertion order.
        oldest = sorted(self._entries.items(), key=lambda item: item[1].fetched_at)
        for key, _ in oldest[: self._config.evict_batch]:
            del self._entries[key]
        logger.debug(
            "Cache evicted %d oldest entries (%d remain)",
            min(self._config.evict_batch, len(oldest)), len(self._entries),
        )
