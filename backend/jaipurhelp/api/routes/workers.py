"""Worker directory routes. Contact fields are never exposed here."""

from fastapi import APIRouter, HTTPException, Query

from jaipurhelp.core.exceptions import WorkerNotFoundError, WorkerNotPublicError
from jaipurhelp.db.base import get_session_factory
from jaipurhelp.schemas.entitlements import WorkerPublicResponse
from jaipurhelp.services.worker_directory import get_public_record, list_public_workers

router = APIRouter()


@router.get("/workers", response_model=list[WorkerPublicResponse])
async def list_workers(
    category: str | None = None,
    area: str | None = None,
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    async with get_session_factory()() as session:
        workers = await list_public_workers(session, category=category, area=area, limit=limit, offset=offset)
    return [WorkerPublicResponse.model_validate(w) for w in workers]


@router.get("/workers/{worker_id}", response_model=WorkerPublicResponse)
async def get_worker(worker_id: str):
    async with get_session_factory()() as session:
        try:
            worker = await get_public_record(session, worker_id)
        except (WorkerNotFoundError, WorkerNotPublicError):
            raise HTTPException(status_code=404, detail={"reason": "WorkerNotFound"})
    return WorkerPublicResponse.model_validate(worker)
