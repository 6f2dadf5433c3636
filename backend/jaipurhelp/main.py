"""JaipurHelp Backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog runs before the remaining app imports: structlog caches
# the processor chain the first time a module-level logger is used.
from jaipurhelp.core.config import get_settings
from jaipurhelp.core.logging import configure_structlog

configure_structlog(
    log_level="DEBUG" if get_settings().debug else "INFO",
    json_logs=not get_settings().debug,
)

import structlog

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from jaipurhelp.api.routes import api_router
from jaipurhelp.db import close_db, init_db
from jaipurhelp.db.seed import seed_plans
from jaipurhelp.middleware.correlation import REQUEST_ID_HEADER, get_correlation_id, setup_correlation_middleware

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and seed the plan catalog; dispose the engine on exit."""
    app.state.shutting_down = False

    def _drain(signum, frame):
        # /api/health answers 503 from here on so the balancer stops routing
        app.state.shutting_down = True
        logger.info("sigterm_received")

    signal.signal(signal.SIGTERM, _drain)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    await init_db()
    await seed_plans()
    logger.info("startup_complete", lazy_provisioning=settings.lazy_provision_subscriptions)

    yield

    await close_db()
    logger.info("shutdown_complete")


def _error_context(request: Request) -> dict:
    """Fields attached to every error log line, plus a fresh debug_id for the client."""
    return {
        "debug_id": str(uuid.uuid4()),
        "correlation_id": get_correlation_id(),
        "path": request.url.path,
        "method": request.method,
        "user_id": getattr(request.state, "user_id", None),
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Log the HTTPException server side and return its detail with a debug_id.

    Denials (401/403/404/409) log at info; anything 5xx logs at error.
    """
    context = _error_context(request)
    log = logger.error if exc.status_code >= 500 else logger.info
    log("http_exception", status_code=exc.status_code, detail=exc.detail, **context)

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": context["debug_id"]},
        headers=getattr(exc, "headers", None),
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Traceback stays in the logs; the client only sees the debug_id
    context = _error_context(request)
    logger.error(
        "unhandled_exception",
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
        **context,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": context["debug_id"]},
    )


def create_app() -> FastAPI:
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Verified household workers in Jaipur, with subscription-metered contact access",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=sorted({settings.frontend_url, *settings.allowed_origins}),
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
    # Added last so it wraps CORS and sees every request first
    setup_correlation_middleware(app)

    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(api_router, prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("jaipurhelp.main:app", host="0.0.0.0", port=8000, reload=get_settings().debug)
