"""HTTP routes. The identity provider sets ``x-user-id``; it is trusted as given."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from jobquota.core.errors import AuthenticationRequiredError
from jobquota.core.schemas import JobListing, SearchPreferences
from jobquota.pipeline.orchestrator import SearchOrchestrator
from jobquota.stores.base import PersistentStore

logger = logging.getLogger(__name__)

router = APIRouter()


class SaveJobRequest(BaseModel):
    job: JobListing
    match_score: int = 0


def get_orchestrator(request: Request) -> SearchOrchestrator:
    return request.app.state.orchestrator  # type: ignore[no-any-return]


def get_store(request: Request) -> PersistentStore:
    return request.app.state.store  # type: ignore[no-any-return]


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise AuthenticationRequiredError
    return x_user_id


@router.post("/jobs/search")
async def search_jobs(
    preferences: SearchPreferences,
    x_user_id: str | None = Header(default=None),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    # The orchestrator owns the auth/role checks so the CLI gets them too.
    response = await orchestrator.search(x_user_id, preferences)
    return response.to_payload()


@router.get("/quota")
async def get_quota(
    user_id: str = Depends(require_user),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.quota_status(user_id)


@router.get("/jobs/status")
async def get_status(
    user_id: str = Depends(require_user),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.user_status(user_id)


@router.get("/user/statistics")
async def get_statistics(
    user_id: str = Depends(require_user),
    orchestrator: SearchOrchestrator = Depends(get_orchestrator),
) -> dict[str, Any]:
    return await orchestrator.user_statistics(user_id)


@router.get("/jobs/saved")
async def list_saved_jobs(
    user_id: str = Depends(require_user),
    store: PersistentStore = Depends(get_store),
) -> dict[str, Any]:
    saved = await store.list_saved_jobs(user_id)
    return {
        "saved_jobs": [job.model_dump(mode="json") for job in saved],
        "count": len(saved),
    }


@router.post("/jobs/saved")
async def save_job(
    body: SaveJobRequest,
    user_id: str = Depends(require_user),
    store: PersistentStore = Depends(get_store),
) -> dict[str, Any]:
    saved = await store.upsert_saved_job(user_id, body.job, body.match_score)
    logger.info("Saved job '%s' for '%s'", body.job.job_id, user_id)
    return {"message": "Job saved successfully", "saved_job": saved.model_dump(mode="json")}


@router.delete("/jobs/saved", response_model=None)
async def delete_saved_job(
    job_id: str | None = Query(default=None),
    user_id: str = Depends(require_user),
    store: PersistentStore = Depends(get_store),
) -> dict[str, Any] | JSONResponse:
    if not job_id:
        return JSONResponse({"error": "Job ID is required"}, status_code=400)
    await store.delete_saved_job(user_id, job_id)
    return {"message": "Job removed from saved list"}


@router.post("/jobs/saved/{job_id}/applied", response_model=None)
async def mark_applied(
    job_id: str,
    user_id: str = Depends(require_user),
    store: PersistentStore = Depends(get_store),
) -> dict[str, Any] | JSONResponse:
    if not await store.mark_job_applied(user_id, job_id):
        return JSONResponse({"error": "Saved job not found"}, status_code=404)
    return {"message": "Job marked as applied"}
