"""structlog setup for the JaipurHelp backend.

Application code logs through ``structlog.get_logger(__name__)`` with event
names (``contact_revealed``, ``subscription_provisioned``) and key/value
context. Records from stdlib loggers (uvicorn, SQLAlchemy, aiosqlite) are
routed through the same processor chain, so every line on stdout has one
format: JSON in production, colored console output when ``debug`` is on.
"""

import logging
import sys

import structlog
from asgi_correlation_id.context import correlation_id

SERVICE_NAME = "jaipurhelp-backend"

# Loggers that are too chatty at INFO for request-level logs
_QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "aiosqlite", "asyncio")


def add_correlation_id(logger, method, event_dict):
    """Attach the current X-Request-ID, when inside a request."""
    request_id = correlation_id.get(None)
    if request_id:
        event_dict["correlation_id"] = request_id
    return event_dict


def add_service(logger, method, event_dict):
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _build_handler(shared_processors: list, json_logs: bool) -> logging.Handler:
    final = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if json_logs:
        final += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        final.append(structlog.dev.ConsoleRenderer())

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processors=final, foreign_pre_chain=shared_processors)
    )
    return handler


def configure_structlog(log_level: str = "INFO", json_logs: bool = True) -> None:
    """Install structlog and the stdlib bridge on the root logger.

    Must run before modules that call ``structlog.get_logger`` at import time
    are used: loggers are cached on first use.
    """
    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service,
        add_correlation_id,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(_build_handler(shared_processors, json_logs))
    root.setLevel(log_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[*shared_processors, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
