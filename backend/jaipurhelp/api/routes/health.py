"""Liveness and readiness probes."""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from jaipurhelp.db.base import get_session_factory

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE = "jaipurhelp-backend"


@router.get("/health")
async def health_check(request: Request):
    """Process liveness. Answers 503 once SIGTERM has been received."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE})
    return {"status": "healthy", "service": SERVICE}


async def _database_ready() -> bool:
    try:
        async with get_session_factory()() as session:
            await session.execute(text("SELECT 1"))
    except RuntimeError:
        # init_db() has not run
        logger.warning("readiness_db_uninitialized")
        return False
    except SQLAlchemyError as exc:
        logger.error("readiness_db_failed", error=str(exc), error_type=type(exc).__name__)
        return False
    return True


@router.get("/ready")
async def readiness_check():
    checks = {"database": await _database_ready()}
    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "degraded", "checks": checks},
    )
