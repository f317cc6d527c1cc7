"""Rule-based match scoring of job listings against search preferences.

Every clause adds a fixed bonus from ScoringConfig; clauses never subtract
and there is no clamp, so callers should treat 100 as a typical ceiling only.
Missing listing fields or empty preferences count as non-matches.
"""

import logging
import re
from datetime import datetime

from jobquota.core.config import ScoringConfig
from jobquota.core.schemas import JobListing, ScoredListing, SearchPreferences, utcnow

logger = logging.getLogger(__name__)

ENTRY_LEVEL_KEYWORDS = ("entry level", "junior")
SENIOR_KEYWORDS = ("senior", "experienced")
SENIOR_YEARS_THRESHOLD = 3

_FIRST_INT = re.compile(r"\d+")
_NON_DIGITS = re.compile(r"[^0-9]")


def score_listing(
    listing: JobListing,
    preferences: SearchPreferences,
    config: ScoringConfig,
    now: datetime | None = None,
) -> int:
    """Score a single listing using additive rule-based bonuses."""
    score = 0

    # Role in title
    role = preferences.role.strip().lower()
    if role and role in listing.title.lower():
        score += config.title_match_bonus

    # Employment type ("full time job" -> "full time")
    job_type = _strip_job_suffix(preferences.job_type.strip().lower())
    if job_type and job_type in listing.employment_type.lower():
        score += config.employment_type_bonus

    score += _location_bonus(listing, preferences.location, config)
    score += _experience_bonus(listing, preferences.experience, config)
    score += _salary_bonus(listing, preferences.salary, config)

    # Recency
    if listing.posted_at is not None:
        age = (now or utcnow()) - listing.posted_at
        if age.total_seconds() <= config.recency_days * 86400:
            score += config.recency_bonus

    return score


def rank_listings(
    listings: list[JobListing],
    preferences: SearchPreferences,
    config: ScoringConfig,
    now: datetime | None = None,
    description_max_chars: int | None = None,
) -> list[ScoredListing]:
    """Score a batch and return it sorted by score desc.

    ``sorted`` is stable, so equal scores keep their input order. Descriptions
    are truncated for display after scoring, so the full text still counts.
    """
    now = now or utcnow()
    scored = [
        ScoredListing(
            listing=_truncate_description(listing, description_max_chars),
            match_score=score_listing(listing, preferences, config, now),
        )
        for listing in listings
    ]
    return sorted(scored, key=lambda s: s.match_score, reverse=True)


def _strip_job_suffix(job_type: str) -> str:
    if job_type.endswith(" job"):
        return job_type[: -len(" job")].strip()
    return job_type


def _location_bonus(listing: JobListing, location: str, config: ScoringConfig) -> int:
    wanted = location.strip().lower()
    if not wanted:
        return 0
    if "remote" in wanted and listing.is_remote:
        return config.remote_bonus
    if wanted.startswith("in "):
        wanted = wanted[3:].strip()
    if wanted and wanted in listing.location_text.lower():
        return config.location_match_bonus
    return 0


def _experience_bonus(listing: JobListing, experience: str, config: ScoringConfig) -> int:
    if not experience or not listing.description:
        return 0
    match = _FIRST_INT.search(experience)
    years = int(match.group(0)) if match else 0
    description = listing.description.lower()
    if years == 0 and any(kw in description for kw in ENTRY_LEVEL_KEYWORDS):
        return config.experience_match_bonus
    if years >= SENIOR_YEARS_THRESHOLD and any(kw in description for kw in SENIOR_KEYWORDS):
        return config.experience_match_bonus
    return 0


def _salary_bonus(listing: JobListing, salary: str, config: ScoringConfig) -> int:
    if not salary or listing.salary_min is None or listing.salary_max is None:
        return 0
    digits = _NON_DIGITS.sub("", salary)
    if not digits:
        return 0
    wanted = int(digits)
    if wanted and listing.salary_min <= wanted <= listing.salary_max:
        return config.salary_match_bonus
    return 0


def _truncate_description(listing: JobListing, max_chars: int | None) -> JobListing:
    if max_chars is None or len(listing.description) <= max_chars:
        return listing
    return listing.model_copy(update={"description": listing.description[:max_chars] + "..."})
