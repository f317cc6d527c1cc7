"""Abstract base class for persistent stores (quota, search history, saved jobs)."""

from abc import ABC, abstractmethod

from jobquota.core.schemas import JobListing, QuotaRecord, SavedJob, SearchHistoryEntry


class PersistentStore(ABC):
    """Narrow interface the search core uses to reach the managed database.

    Every method may raise StoreUnavailableError when the backend is
    unreachable or not provisioned.
    """

    @abstractmethod
    async def read_quota(self, user_id: str, month_key: str) -> QuotaRecord | None:
        """Return the quota record for (user, month), or None if absent."""

    @abstractmethod
    async def write_quota(
        self,
        user_id: str,
        month_key: str,
        searches_used: int,
        max_searches: int,
    ) -> QuotaRecord:
        """Create or overwrite the quota record for (user, month)."""

    @abstractmethod
    async def append_search_history(self, entry: SearchHistoryEntry) -> SearchHistoryEntry:
        """Persist a fresh search. Returns the stored entry."""

    @abstractmethod
    async def read_search_history(
        self,
        user_id: str,
        month_key: str,
    ) -> list[SearchHistoryEntry]:
        """Return a user's searches for the month, newest first."""

    @abstractmethod
    async def read_all_search_history(self, user_id: str) -> list[SearchHistoryEntry]:
        """Return every search the user has run, across all months, newest first."""

    @abstractmethod
    async def upsert_saved_job(
        self,
        user_id: str,
        job: JobListing,
        match_score: int,
    ) -> SavedJob:
        """Save (or re-save) a job to the user's permanent collection."""

    @abstractmethod
    async def list_saved_jobs(self, user_id: str) -> list[SavedJob]:
        """Return the user's saved jobs, newest first."""

    @abstractmethod
    async def delete_saved_job(self, user_id: str, job_id: str) -> bool:
        """Remove a saved job. Returns True if something was removed."""

    @abstractmethod
    async def mark_job_applied(self, user_id: str, job_id: str) -> bool:
        """Flag a saved job as applied. Returns False if it is not saved."""
