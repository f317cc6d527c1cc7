"""Abstract base class for job search API clients."""

from abc import ABC, abstractmethod

from jobquota.core.schemas import JobListing, SearchRequest


class JobSearchClient(ABC):
    """Base class that every job search backend must implement."""

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'jsearch')."""

    @abstractmethod
    async def search(self, request: SearchRequest) -> list[JobListing]:
        """Run a search and return listings in the provider's order.

        Raises JobSearchAPIError on any provider or network failure.
        """

    def budget_status(self) -> dict[str, int | str] | None:
        """Provider call budget as ``{remaining, total, reset_date}``, or None if untracked."""
        return None
