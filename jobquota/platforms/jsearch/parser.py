"""JSearch response parser: converts API job objects into JobListing.

Items without a ``job_id`` are skipped. Any other missing field falls back to
an empty value; a malformed item is logged and skipped, never fatal.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from jobquota.core.schemas import JobListing

logger = logging.getLogger(__name__)


def parse_jobs(payload: Any) -> list[JobListing]:
    """Parse the ``data`` array of a JSearch response body."""
    if not isinstance(payload, dict):
        logger.warning("Unexpected JSearch response type: %s", type(payload).__name__)
        return []
    items = payload.get("data") or []
    if not isinstance(items, list):
        logger.warning("JSearch 'data' is not a list - ignoring")
        return []

    results: list[JobListing] = []
    for item in items:
        if not isinstance(item, dict):
            logger.debug("Skipping non-object JSearch item: %r", item)
            continue
        try:
            listing = parse_job(item)
        except (ValidationError, TypeError, ValueError):
            logger.debug("Failed to parse JSearch item, skipping", exc_info=True)
            continue
        if listing is not None:
            results.append(listing)
    return results


def parse_job(item: dict[str, Any]) -> JobListing | None:
    """Parse one JSearch job object. Returns None if job_id is missing."""
    job_id = item.get("job_id")
    if not job_id:
        logger.debug("JSearch item missing job_id - skipping")
        return None

    return JobListing(
        job_id=str(job_id),
        employer=item.get("employer_name") or "",
        employer_logo=item.get("employer_logo"),
        title=item.get("job_title") or "",
        description=item.get("job_description") or "",
        apply_link=item.get("job_apply_link") or "",
        city=item.get("job_city"),
        state=item.get("job_state"),
        country=item.get("job_country"),
        is_remote=bool(item.get("job_is_remote")),
        employment_type=item.get("job_employment_type") or "",
        salary_min=item.get("job_min_salary"),
        salary_max=item.get("job_max_salary"),
        salary_currency=item.get("job_salary_currency"),
        salary_period=item.get("job_salary_period"),
        posted_at=_parse_posted_at(item),
    )


def _parse_posted_at(item: dict[str, Any]) -> datetime | None:
    """Prefer the epoch timestamp, fall back to the ISO UTC string."""
    timestamp = item.get("job_posted_at_timestamp")
    if timestamp:
        return datetime.fromtimestamp(float(timestamp), tz=timezone.utc)

    raw = item.get("job_posted_at_datetime_utc")
    if raw:
        try:
            parsed = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable posted date '%s'", raw)
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None
