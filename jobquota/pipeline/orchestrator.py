"""Orchestrator: wires collection lookup, quota, job API, scorer, and persistence.

Data flow per search request:
  1. Collection check: this month's stored results, deduped and re-ranked
  2. Quota gate (before any external call)
  3. Job API search (response cache lives inside the client)
  4. Rank & truncate to the result cap
  5. Persist history + record quota, concurrently, best-effort
  6. Ranked response with quota metadata
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any

from jobquota.core.config import Settings
from jobquota.core.errors import (
    AuthenticationRequiredError,
    MissingRoleError,
    QuotaExceededError,
    StoreUnavailableError,
)
from jobquota.core.schemas import (
    JobListing,
    QuotaCheck,
    QuotaRecord,
    ScoredListing,
    SearchHistoryEntry,
    SearchMeta,
    SearchPreferences,
    SearchRequest,
    SearchResponse,
    utcnow,
)
from jobquota.pipeline.matcher import dedupe_listings, flatten_history
from jobquota.pipeline.quota_ledger import QuotaLedger, current_month_key
from jobquota.pipeline.scorer import rank_listings
from jobquota.platforms.base import JobSearchClient
from jobquota.platforms.jsearch.searcher import build_search_request
from jobquota.stores.base import PersistentStore

logger = logging.getLogger(__name__)

COLLECTION_MESSAGE = "Showing jobs from your personal collection this month"
NO_RESULTS_MESSAGE = "No jobs found for your search criteria. Try different keywords or location."
DEGRADED_MESSAGE = (
    "Fresh job search results! Quota tracking will resume once the database is available."
)


class SearchOrchestrator:
    """Serves search requests for one process.

    Stateless apart from its collaborators; safe to share across concurrent
    requests.
    """

    def __init__(
        self,
        store: PersistentStore,
        client: JobSearchClient,
        ledger: QuotaLedger,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = store
        self._client = client
        self._ledger = ledger
        self._settings = settings or Settings()
        self._clock = clock

    async def search(self, user_id: str | None, preferences: SearchPreferences) -> SearchResponse:
        """Run one search request through the full pipeline.

        Raises AuthenticationRequiredError, MissingRoleError, QuotaExceededError
        or JobSearchAPIError; everything else degrades gracefully.
        """
        if not user_id:
            raise AuthenticationRequiredError
        if not preferences.role.strip():
            raise MissingRoleError

        now = self._clock()
        request = build_search_request(preferences, self._settings.jsearch)

        # Step 1: Re-rank this month's collection instead of spending quota
        collection = await self._load_collection(user_id, now)
        if collection:
            return await self._serve_collection(user_id, preferences, request, collection, now)

        # Step 2: Quota gate
        check = await self._ledger.check(user_id)
        if not check.allowed and check.record is not None:
            logger.info("Quota exhausted for '%s' - rejecting fresh search", user_id)
            raise QuotaExceededError(check.record, self._ledger.reset_date())

        # Step 3: Job API search (cached inside the client)
        logger.info("Fresh search for '%s': '%s' in '%s'", user_id, request.query, request.location)
        listings = await self._client.search(request)
        if not listings:
            return SearchResponse(
                jobs=[],
                meta=SearchMeta(
                    total=0,
                    query=request.query,
                    location=request.location,
                    remaining_searches=check.remaining,
                    message=NO_RESULTS_MESSAGE,
                ),
            )

        # Step 4: Rank the first N results
        ranked = rank_listings(
            listings[: self._settings.search.result_cap],
            preferences,
            self._settings.scoring,
            now,
            description_max_chars=self._settings.search.description_max_chars,
        )

        # Step 5: Persist + record quota, failures isolated from each other
        updated = await self._persist_and_account(user_id, preferences, request, ranked, check, now)

        # Step 6: Response
        return SearchResponse(jobs=ranked, meta=self._fresh_meta(request, ranked, check, updated))

    async def quota_status(self, user_id: str | None) -> dict[str, Any]:
        """Quota endpoint payload. Creates this month's record if absent."""
        if not user_id:
            raise AuthenticationRequiredError
        check = await self._ledger.check(user_id)
        record = check.record
        return {
            "success": True,
            "remaining_searches": check.remaining,
            "max_searches": record.max_searches if record else self._ledger.max_searches,
            "searches_used": record.searches_used if record else 0,
            "allowed": check.allowed,
            "month_year": record.month_key if record else current_month_key(self._clock()),
            "degraded": check.degraded,
            "api_budget": self._client.budget_status(),
        }

    async def user_status(self, user_id: str | None) -> dict[str, Any]:
        """Usage summary for the dashboard."""
        if not user_id:
            raise AuthenticationRequiredError
        now = self._clock()
        check = await self._ledger.check(user_id)
        collection = await self._load_collection(user_id, now)
        record = check.record
        usage = 0
        if record is not None and record.max_searches > 0:
            usage = round(record.searches_used / record.max_searches * 100)
        return {
            "success": True,
            "status": {
                "remaining_searches": check.remaining,
                "max_searches": record.max_searches if record else self._ledger.max_searches,
                "searches_used": record.searches_used if record else 0,
                "usage_percentage": usage,
                "is_near_limit": check.remaining <= 1,
                "is_at_limit": not check.allowed,
                "total_jobs_found": len(collection),
                "current_month": current_month_key(now),
            },
        }

    async def user_statistics(self, user_id: str | None) -> dict[str, Any]:
        """Lifetime usage counters. Read-only; zeros while the store is unavailable."""
        if not user_id:
            raise AuthenticationRequiredError
        max_searches = self._ledger.max_searches
        try:
            history = await self._store.read_all_search_history(user_id)
            saved = await self._store.list_saved_jobs(user_id)
            record = await self._store.read_quota(user_id, self._ledger.month_key())
        except StoreUnavailableError:
            logger.info("Store not ready - returning default statistics for '%s'", user_id)
            history, saved, record = [], [], None

        used = record.searches_used if record else 0
        if record is not None:
            max_searches = record.max_searches
        return {
            "success": True,
            "statistics": {
                "total_searches": len(history),
                "total_jobs_fetched": sum(len(entry.job_data) for entry in history),
                "saved_jobs_count": len(saved),
                "current_month_searches": used,
                "max_searches_per_month": max_searches,
                "searches_remaining": max(0, max_searches - used),
            },
        }

    async def _load_collection(self, user_id: str, now: datetime) -> list[JobListing]:
        """All listings from this month's searches, unique by job_id (newest search first)."""
        try:
            entries = await self._store.read_search_history(user_id, current_month_key(now))
        except StoreUnavailableError:
            logger.info("Search history unavailable for '%s' - treating as empty", user_id)
            return []
        listings = dedupe_listings(flatten_history(entries))
        logger.debug("Found %d existing jobs for '%s'", len(listings), user_id)
        return listings

    async def _serve_collection(
        self,
        user_id: str,
        preferences: SearchPreferences,
        request: SearchRequest,
        collection: list[JobListing],
        now: datetime,
    ) -> SearchResponse:
        ranked = rank_listings(
            collection,
            preferences,
            self._settings.scoring,
            now,
            description_max_chars=self._settings.search.description_max_chars,
        )
        # Display only: never creates a record, never enforces.
        quota = await self._ledger.peek(user_id)
        logger.info(
            "Serving '%s' from personal collection (%d jobs)", user_id, len(collection),
        )
        return SearchResponse(
            jobs=ranked[: self._settings.search.result_cap],
            meta=SearchMeta(
                total=len(ranked),
                query=request.query,
                location=request.location,
                from_user_collection=True,
                remaining_searches=quota.remaining,
                quota_used=quota.record.searches_used if quota.record else 0,
                max_searches=(
                    quota.record.max_searches if quota.record else self._ledger.max_searches
                ),
                message=COLLECTION_MESSAGE,
            ),
        )

    async def _persist_and_account(
        self,
        user_id: str,
        preferences: SearchPreferences,
        request: SearchRequest,
        ranked: list[ScoredListing],
        check: QuotaCheck,
        now: datetime,
    ) -> QuotaRecord | None:
        """Append history and increment quota concurrently. Returns the updated quota record, if any."""
        entry = SearchHistoryEntry(
            user_id=user_id,
            query=request.query,
            location=request.location,
            employment_type=request.employment_type,
            experience=preferences.experience,
            job_data=[s.listing for s in ranked],
            month_key=current_month_key(now),
            timestamp=now,
        )
        tasks = [self._store.append_search_history(entry)]
        # Degraded mode: there is no record to increment.
        if check.record is not None:
            tasks.append(self._ledger.increment(user_id))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        updated: QuotaRecord | None = None
        for label, result in zip(("history append", "quota increment"), results):
            if isinstance(result, Exception):
                logger.warning(
                    "Could not complete %s for '%s' - continuing",
                    label, user_id, exc_info=result,
                )
            elif isinstance(result, BaseException):
                raise result
            elif isinstance(result, QuotaRecord):
                updated = result
        if not isinstance(results[0], BaseException):
            logger.info("Saved search for '%s' (%d jobs)", user_id, len(ranked))
        return updated

    def _fresh_meta(
        self,
        request: SearchRequest,
        ranked: list[ScoredListing],
        check: QuotaCheck,
        updated: QuotaRecord | None,
    ) -> SearchMeta:
        remaining = max(0, check.remaining - 1)
        if updated is not None:
            quota_used = updated.searches_used
            max_searches = updated.max_searches
        elif check.record is not None:
            quota_used = check.record.searches_used + 1
            max_searches = check.record.max_searches
        else:
            quota_used = 1
            max_searches = self._ledger.max_searches

        if check.degraded:
            message = DEGRADED_MESSAGE
        else:
            message = f"Fresh search complete! You have {remaining} searches remaining this month."

        return SearchMeta(
            total=len(ranked),
            query=request.query,
            location=request.location,
            from_user_collection=False,
            remaining_searches=remaining,
            quota_used=quota_used,
            max_searches=max_searches,
            message=message,
        )
