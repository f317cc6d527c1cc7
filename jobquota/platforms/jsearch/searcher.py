"""JSearch request normalization and query-parameter building.

Pure functions with no network dependency. Normalization must be deterministic:
two logically identical form inputs must yield the same SearchRequest, and
therefore the same cache key.
"""

import logging
import re

from jobquota.core.config import JSearchConfig
from jobquota.core.schemas import SearchPreferences, SearchRequest

logger = logging.getLogger(__name__)

DEFAULT_EMPLOYMENT_TYPE = "FULLTIME"

EMPLOYMENT_TYPE_MAP: dict[str, str] = {
    "full time job": "FULLTIME",
    "part time job": "PARTTIME",
    "internship": "INTERN",
}

LOCATION_MAP: dict[str, str] = {
    "delhi ncr": "Delhi NCR, India",
    "mumbai": "Mumbai, India",
    "bangalore": "Bangalore, India",
    "pune": "Pune, India",
    "hyderabad": "Hyderabad, India",
    "chennai": "Chennai, India",
    "anywhere in india": "India",
    "remote": "Remote",
    "hybrid": "Remote",
}

_IN_PREFIX = re.compile(r"^in\s+", re.IGNORECASE)


def format_employment_type(job_type: str) -> str:
    """Map a form job type to a JSearch employment type. Unknown values fall back to FULLTIME."""
    key = job_type.lower().strip()
    mapped = EMPLOYMENT_TYPE_MAP.get(key)
    if mapped is None:
        if key:
            logger.debug("Unknown job type '%s' - using %s", job_type, DEFAULT_EMPLOYMENT_TYPE)
        return DEFAULT_EMPLOYMENT_TYPE
    return mapped


def format_location(location: str) -> str:
    """Strip a leading "in " and map known short names to JSearch-friendly locations."""
    if not location:
        return ""
    cleaned = _IN_PREFIX.sub("", location.strip())
    return LOCATION_MAP.get(cleaned.lower(), cleaned)


def build_query(preferences: SearchPreferences) -> str:
    """Free-text query: role followed by experience, when given."""
    parts = [preferences.role.strip(), preferences.experience.strip()]
    return " ".join(p for p in parts if p)


def build_search_request(
    preferences: SearchPreferences,
    config: JSearchConfig,
    page: int = 1,
) -> SearchRequest:
    """Normalize form input into a SearchRequest."""
    return SearchRequest(
        query=build_query(preferences),
        location=format_location(preferences.location),
        employment_type=format_employment_type(preferences.job_type),
        page=page,
        page_size=config.page_size,
    )


def build_params(request: SearchRequest) -> dict[str, str]:
    """Build JSearch query parameters for a normalized request."""
    query = request.query
    if request.location:
        query = f"{query} in {request.location}"
    params: dict[str, str] = {
        "query": query,
        "page": str(request.page),
        "num_pages": "1",
        "page_size": str(request.page_size),
    }
    if request.employment_type:
        params["employment_types"] = request.employment_type.upper()
    return params
