"""X-Request-ID propagation.

Incoming ``X-Request-ID`` values are echoed back; requests without one get a
fresh UUID. The id is readable anywhere in the request through
``get_correlation_id()`` and is stamped on every log line by
``jaipurhelp.core.logging.add_correlation_id``.
"""

import uuid

from asgi_correlation_id import CorrelationIdMiddleware
from asgi_correlation_id.context import correlation_id
from fastapi import FastAPI

REQUEST_ID_HEADER = "X-Request-ID"
_MAX_REQUEST_ID_LENGTH = 128


def _accept_request_id(value: str) -> bool:
    # Client ids are opaque; only reject empty or oversized values
    return 0 < len(value) <= _MAX_REQUEST_ID_LENGTH


def setup_correlation_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CorrelationIdMiddleware,
        header_name=REQUEST_ID_HEADER,
        update_request_header=True,
        generator=lambda: str(uuid.uuid4()),
        validator=_accept_request_id,
        transformer=lambda value: value,
    )


def get_correlation_id() -> str | None:
    """Current request id, or None outside a request."""
    return correlation_id.get(None)
