"""Read-only access to worker directory records."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from jaipurhelp.core.exceptions import WorkerNotFoundError, WorkerNotPublicError
from jaipurhelp.db.models.worker import Worker

APPROVED = "approved"


def is_public(worker: Worker) -> bool:
    return worker.status == APPROVED and bool(worker.is_active)


async def get_public_record(session: AsyncSession, worker_id: str) -> Worker:
    """Return an approved, active worker.

    Raises:
        WorkerNotFoundError: no record
        WorkerNotPublicError: record exists but is pending/rejected or deactivated
    """
    worker = await session.get(Worker, worker_id)
    if worker is None:
        raise WorkerNotFoundError(worker_id)
    if not is_public(worker):
        raise WorkerNotPublicError(worker_id, worker.status, bool(worker.is_active))
    return worker


async def list_public_workers(
    session: AsyncSession,
    category: str | None = None,
    area: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Worker]:
    stmt = select(Worker).where(Worker.status == APPROVED, Worker.is_active.is_(True))
    if category:
        stmt = stmt.where(Worker.category == category)
    if area:
        stmt = stmt.where(Worker.area == area)
    stmt = stmt.order_by(Worker.created_at.desc(), Worker.id).limit(limit).offset(offset)

    result = await session.execute(stmt)
    return list(result.scalars().all())
