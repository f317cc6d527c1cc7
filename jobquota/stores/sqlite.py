"""SQLite-backed PersistentStore."""

import logging
import sqlite3
from collections.abc import Callable
from datetime import datetime
from typing import ParamSpec, TypeVar

from jobquota.core import db
from jobquota.core.errors import StoreUnavailableError
from jobquota.core.schemas import (
    JobListing,
    QuotaRecord,
    SavedJob,
    SearchHistoryEntry,
    utcnow,
)
from jobquota.stores.base import PersistentStore

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class SQLiteStore(PersistentStore):
    """PersistentStore over a single sqlite3 connection.

    Calls run inline on the event loop; SQLite queries here are short and
    local. Any sqlite3 error surfaces as StoreUnavailableError.
    """

    def __init__(
        self,
        conn: sqlite3.Connection,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._conn = conn
        self._clock = clock

    def _call(self, func: Callable[P, R], *args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except sqlite3.Error as e:
            logger.debug("SQLite call %s failed", func.__name__, exc_info=True)
            msg = f"Store unavailable: {e}"
            raise StoreUnavailableError(msg) from e

    async def read_quota(self, user_id: str, month_key: str) -> QuotaRecord | None:
        return self._call(db.get_quota, self._conn, user_id, month_key)

    async def write_quota(
        self,
        user_id: str,
        month_key: str,
        searches_used: int,
        max_searches: int,
    ) -> QuotaRecord:
        return self._call(
            db.write_quota,
            self._conn,
            user_id,
            month_key,
            searches_used,
            max_searches,
            now=self._clock(),
        )

    async def append_search_history(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        return self._call(db.insert_search_history, self._conn, entry)

    async def read_search_history(
        self,
        user_id: str,
        month_key: str,
    ) -> list[SearchHistoryEntry]:
        return self._call(db.get_search_history, self._conn, user_id, month_key)

    async def read_all_search_history(self, user_id: str) -> list[SearchHistoryEntry]:
        return self._call(db.get_all_search_history, self._conn, user_id)

    async def upsert_saved_job(
        self,
        user_id: str,
        job: JobListing,
        match_score: int,
    ) -> SavedJob:
        return self._call(
            db.upsert_saved_job, self._conn, user_id, job, match_score, now=self._clock(),
        )

    async def list_saved_jobs(self, user_id: str) -> list[SavedJob]:
        return self._call(db.get_saved_jobs, self._conn, user_id)

    async def delete_saved_job(self, user_id: str, job_id: str) -> bool:
        return self._call(db.delete_saved_job, self._conn, user_id, job_id)

    async def mark_job_applied(self, user_id: str, job_id: str) -> bool:
        return self._call(db.mark_job_applied, self._conn, user_id, job_id, now=self._clock())
