"""X-Request-ID handling and access logging.

Each request gets an ID, either the caller's X-Request-ID (when it is a safe
token) or a fresh UUID4. The ID is bound to the logging context for the
duration of the request, so publish logs and error envelopes carry it, and
it is echoed on the response.

Register LAST so it wraps every other middleware.
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from folio.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# UUIDs also match this
_TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

logger = get_logger(__name__)


def is_valid_request_id(value: str) -> bool:
    if not value or len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return False
    return bool(_TOKEN_PATTERN.match(value))


def normalize_request_id(value: str) -> str:
    """Lowercase UUIDs; other tokens pass through unchanged."""
    return value.lower() if _UUID_PATTERN.match(value) else value


def resolve_request_id(header_value: str | None) -> str:
    """Return the caller's ID if usable, otherwise a new UUID4."""
    if header_value and is_valid_request_id(header_value):
        return normalize_request_id(header_value)
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.monotonic()
        request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request.state.request_id = request_id
        set_request_context(request_id)

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("http.request.failed", method=request.method, path=request.url.path)
            raise
        finally:
            clear_request_context()

        response.headers[REQUEST_ID_HEADER] = request_id
        if self.log_requests:
            # Context is already cleared; bind the ID explicitly
            logger.info(
                "http.request.completed",
                request_id=request_id,
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.monotonic() - started) * 1000, 2),
            )
        return response
