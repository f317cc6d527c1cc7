"""Core data models for the job search quota service."""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    """Timezone-aware current time; the default clock everywhere."""
    return datetime.now(timezone.utc)


class JobListing(BaseModel):
    """One job posting returned by the job API or stored in a user's collection.

    Frozen. The match score lives on the ScoredListing wrapper, not here.
    """

    model_config = ConfigDict(frozen=True)

    job_id: str
    employer: str = ""
    employer_logo: str | None = None
    title: str = ""
    description: str = ""
    apply_link: str = ""
    city: str | None = None
    state: str | None = None
    country: str | None = None
    is_remote: bool = False
    employment_type: str = ""
    salary_min: float | None = None
    salary_max: float | None = None
    salary_currency: str | None = None
    salary_period: str | None = None
    posted_at: datetime | None = None

    @property
    def location_text(self) -> str:
        """``"city state country"`` with missing parts left empty."""
        return " ".join(part or "" for part in (self.city, self.state, self.country))


class ScoredListing(BaseModel):
    """Wrapper that pairs a frozen JobListing with its match score."""

    model_config = ConfigDict(frozen=True)

    listing: JobListing
    match_score: int = Field(default=0, ge=0)

    def to_payload(self) -> dict[str, Any]:
        """Flatten into the listing fields plus ``match_score``."""
        data = self.listing.model_dump(mode="json")
        data["match_score"] = self.match_score
        return data


class SearchPreferences(BaseModel):
    """Raw search form input. Only ``role`` is required, and that is checked by the orchestrator.

    The form posts ``jobType``; ``job_type`` is accepted as well.
    """

    model_config = ConfigDict(populate_by_name=True)

    job_type: str = Field(default="", alias="jobType")
    role: str = ""
    experience: str = ""
    location: str = ""
    salary: str = ""


class SearchRequest(BaseModel):
    """Normalized query sent to the job API and used for cache keys."""

    model_config = ConfigDict(frozen=True)

    query: str
    location: str = ""
    employment_type: str = ""
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=4, ge=1)


class QuotaRecord(BaseModel):
    """Per-user, per-calendar-month search counter."""

    user_id: str
    month_key: str
    searches_used: int = Field(default=0, ge=0)
    max_searches: int = Field(default=3, ge=0)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class QuotaCheck(BaseModel):
    """Outcome of a quota check. ``degraded`` means the store was unreachable."""

    allowed: bool
    record: QuotaRecord | None = None
    remaining: int
    degraded: bool = False


class SearchHistoryEntry(BaseModel):
    """A persisted fresh search. Append-only."""

    id: int | None = None
    user_id: str
    query: str
    location: str = ""
    employment_type: str = ""
    experience: str = ""
    job_data: list[JobListing] = Field(default_factory=list)
    month_key: str
    timestamp: datetime = Field(default_factory=utcnow)


class SavedJob(BaseModel):
    """A job the user pinned to their permanent collection."""

    id: int | None = None
    user_id: str
    job_id: str
    job_data: JobListing
    match_score: int = 0
    is_applied: bool = False
    is_favorited: bool = True
    saved_at: datetime | None = None
    applied_at: datetime | None = None
    notes: str | None = None


class SearchMeta(BaseModel):
    """Metadata block of a search response."""

    total: int
    query: str
    location: str
    from_user_collection: bool = False
    remaining_searches: int | None = None
    quota_used: int | None = None
    max_searches: int | None = None
    message: str | None = None


class SearchResponse(BaseModel):
    """Successful search result: ranked jobs plus metadata."""

    jobs: list[ScoredListing] = Field(default_factory=list)
    meta: SearchMeta

    def to_payload(self) -> dict[str, Any]:
        return {
            "success": True,
            "jobs": [job.to_payload() for job in self.jobs],
            "meta": self.meta.model_dump(mode="json", exclude_none=True),
        }
