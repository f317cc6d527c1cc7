"""Quota ledger: monthly per-user gate for fresh job searches.

Quota state lives in the persistent store, one record per (user, month).
A new calendar month gets a new record, so no explicit reset is needed.

``check`` never increments: the caller increments only after a fresh search
actually ran, so searches served from the user's collection or the cache
are free.

``increment`` is a read-modify-write against the store, not an atomic
update. Concurrent fresh searches by the same user can each read the old
count, under-enforcing the quota by at most N-1 for N parallel requests.
The allowance is advisory, not billing-grade, so this is accepted.
"""

import logging
from collections.abc import Callable
from datetime import date, datetime

from jobquota.core.config import QuotaConfig
from jobquota.core.errors import StoreUnavailableError
from jobquota.core.schemas import QuotaCheck, QuotaRecord, utcnow
from jobquota.stores.base import PersistentStore

logger = logging.getLogger(__name__)


def current_month_key(now: datetime) -> str:
    """Return the YYYY-MM key for ``now``."""
    return now.strftime("%Y-%m")


def next_reset_date(now: datetime) -> str:
    """Return the first day of the month after ``now`` as an ISO date."""
    if now.month == 12:
        return date(now.year + 1, 1, 1).isoformat()
    return date(now.year, now.month + 1, 1).isoformat()


class QuotaLedger:
    """Tracks fresh searches per user per calendar month.

    Usage::

        ledger = QuotaLedger(store, settings.quota)
        check = await ledger.check(user_id)
        if check.allowed:
            ...  # run the fresh search
            await ledger.increment(user_id)
    """

    def __init__(
        self,
        store: PersistentStore,
        config: QuotaConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._config = config or QuotaConfig()
        self._clock = clock

    @property
    def max_searches(self) -> int:
        return self._config.max_searches_per_month

    def month_key(self) -> str:
        return current_month_key(self._clock())

    def reset_date(self) -> str:
        return next_reset_date(self._clock())

    async def check(self, user_id: str) -> QuotaCheck:
        """Return whether the user may run a fresh search, creating this month's record if absent."""
        month_key = self.month_key()
        try:
            record = await self._store.read_quota(user_id, month_key)
            if record is None:
                record = await self._store.write_quota(
                    user_id, month_key, 0, self._config.max_searches_per_month,
                )
                logger.debug("Created quota record for '%s' (%s)", user_id, month_key)
        except StoreUnavailableError as e:
            return self._fallback(user_id, e)
        return self._to_check(record)

    async def peek(self, user_id: str) -> QuotaCheck:
        """Like ``check`` but read-only: a missing record reports a full allowance."""
        try:
            record = await self._store.read_quota(user_id, self.month_key())
        except StoreUnavailableError as e:
            return self._fallback(user_id, e)
        if record is None:
            return QuotaCheck(
                allowed=True, record=None, remaining=self._config.max_searches_per_month,
            )
        return self._to_check(record)

    async def increment(self, user_id: str) -> QuotaRecord:
        """Record one fresh search for the current month.

        Raises StoreUnavailableError if the store cannot be reached.
        """
        month_key = self.month_key()
        record = await self._store.read_quota(user_id, month_key)
        used = record.searches_used if record is not None else 0
        max_searches = (
            record.max_searches if record is not None else self._config.max_searches_per_month
        )
        updated = await self._store.write_quota(user_id, month_key, used + 1, max_searches)
        logger.debug(
            "Recorded search for '%s': %d/%d", user_id, updated.searches_used, updated.max_searches,
        )
        return updated

    def _to_check(self, record: QuotaRecord) -> QuotaCheck:
        remaining = record.max_searches - record.searches_used
        allowed = remaining > 0
        if not allowed:
            logger.info(
                "Quota reached for '%s': %d/%d searches this month",
                record.user_id, record.searches_used, record.max_searches,
            )
        return QuotaCheck(allowed=allowed, record=record, remaining=max(0, remaining))

    def _fallback(self, user_id: str, error: StoreUnavailableError) -> QuotaCheck:
        if not self._config.fail_open:
            raise error
        logger.warning(
            "Quota store unavailable for '%s' - quota enforcement inactive (fail-open): %s",
            user_id,
            error,
        )
        return QuotaCheck(
            allowed=True,
            record=None,
            remaining=self._config.max_searches_per_month,
            degraded=True,
        )
