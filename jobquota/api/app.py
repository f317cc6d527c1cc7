"""FastAPI application factory."""

import logging
from collections.abc import Callable
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from jobquota.api.routes import router
from jobquota.core.config import Settings
from jobquota.core.db import init_db
from jobquota.core.errors import InvalidRequestError, SearchError, StoreUnavailableError
from jobquota.core.schemas import utcnow
from jobquota.pipeline.cache import ResponseCache
from jobquota.pipeline.orchestrator import SearchOrchestrator
from jobquota.pipeline.quota_ledger import QuotaLedger
from jobquota.platforms.base import JobSearchClient
from jobquota.platforms.jsearch.client import JSearchClient
from jobquota.stores.base import PersistentStore
from jobquota.stores.sqlite import SQLiteStore

logger = logging.getLogger(__name__)


def build_orchestrator(
    settings: Settings,
    store: PersistentStore,
    client: JobSearchClient | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> SearchOrchestrator:
    """Assemble the search pipeline. One cache per orchestrator, never module-global."""
    if client is None:
        client = JSearchClient(settings.jsearch, ResponseCache(settings.cache), clock=clock)
    ledger = QuotaLedger(store, settings.quota, clock=clock)
    return SearchOrchestrator(store, client, ledger, settings, clock=clock)


def create_app(
    settings: Settings | None = None,
    *,
    store: PersistentStore | None = None,
    client: JobSearchClient | None = None,
    clock: Callable[[], datetime] = utcnow,
) -> FastAPI:
    settings = settings or Settings()
    if store is None:
        store = SQLiteStore(init_db(settings.database.path), clock=clock)

    app = FastAPI(title="Job Search Quota API", version="0.1.0")
    app.state.store = store
    app.state.orchestrator = build_orchestrator(settings, store, client, clock)

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Job search error: %s", exc.message)
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(StoreUnavailableError)
    async def store_error_handler(request: Request, exc: StoreUnavailableError) -> JSONResponse:
        logger.error("Store error on %s: %s", request.url.path, exc)
        return JSONResponse(
            {"error": "Database unavailable", "message": str(exc)}, status_code=500,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        error = InvalidRequestError(details or None)
        logger.info("Rejected request to %s: %s", request.url.path, error.message)
        return JSONResponse(error.to_payload(), status_code=error.status_code)

    app.include_router(router, prefix="/api")
    return app
