"""JSearch (RapidAPI) client: response cache, call budget and the HTTP call."""

import logging
import os
from collections.abc import Callable
from datetime import datetime

import httpx

from jobquota.core.config import JSearchConfig
from jobquota.core.errors import JobSearchAPIError
from jobquota.core.schemas import JobListing, SearchRequest, utcnow
from jobquota.pipeline.cache import ResponseCache
from jobquota.pipeline.quota_ledger import current_month_key, next_reset_date
from jobquota.platforms.base import JobSearchClient
from jobquota.platforms.jsearch.parser import parse_jobs
from jobquota.platforms.jsearch.searcher import build_params

logger = logging.getLogger(__name__)


class ApiCallBudget:
    """Process-local count of provider calls per calendar month.

    The provider enforces its own limit; this keeps us from burning calls we
    know will be rejected. Restarting the process resets the count.
    """

    def __init__(self, monthly_limit: int, clock: Callable[[], datetime] = utcnow) -> None:
        self._limit = monthly_limit
        self._clock = clock
        self._month = current_month_key(clock())
        self._count = 0

    def _roll(self) -> None:
        month = current_month_key(self._clock())
        if month != self._month:
            self._month = month
            self._count = 0

    @property
    def remaining(self) -> int:
        self._roll()
        return max(0, self._limit - self._count)

    def consume(self) -> bool:
        """Take one call from the budget. Returns False if the month's budget is spent."""
        self._roll()
        if self._count >= self._limit:
            return False
        self._count += 1
        return True

    def status(self) -> dict[str, int | str]:
        return {
            "remaining": self.remaining,
            "total": self._limit,
            "reset_date": next_reset_date(self._clock()),
        }


class JSearchClient(JobSearchClient):
    """Job search over the JSearch API.

    Cache hits return without a network call and without spending budget.
    An ``http_client`` may be injected (tests use httpx.MockTransport);
    otherwise a short-lived AsyncClient is opened per request.
    """

    def __init__(
        self,
        config: JSearchConfig | None = None,
        cache: ResponseCache | None = None,
        *,
        api_key: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        budget: ApiCallBudget | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._config = config or JSearchConfig()
        self._cache = cache
        self._api_key = api_key
        self._http = http_client
        self._budget = budget or ApiCallBudget(self._config.monthly_call_budget, clock)

    @property
    def provider_id(self) -> str:
        return "jsearch"

    def budget_status(self) -> dict[str, int | str]:
        return self._budget.status()

    async def search(self, request: SearchRequest) -> list[JobListing]:
        api_key = self._api_key or os.environ.get(self._config.api_key_env)
        if not api_key:
            msg = "RapidAPI key not configured"
            raise JobSearchAPIError(msg)

        if self._cache is not None:
            cached = self._cache.get(request)
            if cached is not None:
                logger.info("Using cached job search results for '%s'", request.query)
                return cached

        if not self._budget.consume():
            msg = "Monthly job API call budget exhausted"
            raise JobSearchAPIError(msg)

        listings = await self._fetch(request, api_key)
        if self._cache is not None:
            self._cache.put(request, listings)
        return listings

    async def _fetch(self, request: SearchRequest, api_key: str) -> list[JobListing]:
        params = build_params(request)
        headers = {
            "X-RapidAPI-Key": api_key,
            "X-RapidAPI-Host": self._config.host,
        }
        timeout = self._config.timeout_seconds
        logger.info("Querying JSearch: %s (page %d)", params["query"], request.page)

        try:
            if self._http is not None:
                response = await self._http.get(
                    self._config.base_url, params=params, headers=headers, timeout=timeout,
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.get(
                        self._config.base_url, params=params, headers=headers,
                    )
        except httpx.TimeoutException as e:
            msg = f"API request timed out after {timeout}s"
            raise JobSearchAPIError(msg) from e
        except httpx.HTTPError as e:
            msg = f"API request failed: {e}"
            raise JobSearchAPIError(msg) from e

        if response.is_error:
            msg = f"API request failed: {response.status_code} {response.reason_phrase}"
            raise JobSearchAPIError(msg)

        try:
            payload = response.json()
        except ValueError as e:
            msg = "API request failed: response is not valid JSON"
            raise JobSearchAPIError(msg) from e

        listings = parse_jobs(payload)
        logger.info("JSearch returned %d listings", len(listings))
        return listings
