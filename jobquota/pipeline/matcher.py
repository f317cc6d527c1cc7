"""Deduplication of job listings aggregated from several stored searches."""

import logging
from collections.abc import Iterable

from jobquota.core.schemas import JobListing, SearchHistoryEntry

logger = logging.getLogger(__name__)


class DeduplicationFilter:
    """Remove duplicates by job_id, keeping the first occurrence.

    Stateful: tracks seen IDs across calls within the same filter instance.
    """

    def __init__(self) -> None:
        self._seen: set[str] = set()

    def __call__(self, listings: list[JobListing]) -> list[JobListing]:
        result: list[JobListing] = []
        for listing in listings:
            if listing.job_id not in self._seen:
                self._seen.add(listing.job_id)
                result.append(listing)
        deduped = len(listings) - len(result)
        if deduped:
            logger.debug("DeduplicationFilter: removed %d duplicates", deduped)
        return result


def dedupe_listings(listings: list[JobListing]) -> list[JobListing]:
    """Return listings unique by job_id, first-occurrence order preserved."""
    return DeduplicationFilter()(listings)


def flatten_history(entries: Iterable[SearchHistoryEntry]) -> list[JobListing]:
    """Concatenate the job data of stored searches, in the order given."""
    listings: list[JobListing] = []
    for entry in entries:
        listings.extend(entry.job_data)
    return listings
