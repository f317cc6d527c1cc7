"""Error taxonomy for the search flow.

SearchError subclasses are surfaced to callers as structured payloads with a
short ``error`` and a human-readable ``message``. StoreUnavailableError is
raised by persistent stores and recovered locally where a fallback exists.
"""

from typing import Any

from jobquota.core.schemas import QuotaRecord


class StoreUnavailableError(RuntimeError):
    """The persistent store is unreachable or its tables are not provisioned."""


class SearchError(Exception):
    """Base class for errors returned to the caller of a search."""

    status_code: int = 500
    error: str = "Job search failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.error
        super().__init__(self.message)

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error, "message": self.message}


class AuthenticationRequiredError(SearchError):
    status_code = 401
    error = "Authentication required - please sign in"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class MissingRoleError(SearchError):
    status_code = 400
    error = "Role is required"

    def to_payload(self) -> dict[str, Any]:
        return {"error": self.error}


class InvalidRequestError(SearchError):
    """The request body failed validation."""

    status_code = 400
    error = "Invalid request"


class QuotaExceededError(SearchError):
    """Expected business outcome: the monthly allowance is used up."""

    status_code = 429
    error = "Monthly search limit reached"

    def __init__(self, record: QuotaRecord, reset_date: str) -> None:
        self.record = record
        self.reset_date = reset_date
        message = (
            f"You've used all {record.max_searches} searches for this month. "
            "Your searches will reset next month. "
            "You can still view your saved jobs from this month!"
        )
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "message": self.message,
            "reset_date": self.reset_date,
            "remaining": 0,
            "quota": self.record.model_dump(mode="json"),
        }


class JobSearchAPIError(SearchError):
    """The external job API failed (non-2xx, network error, timeout, no key, no budget)."""

    status_code = 500
    error = "Job search failed"
