"""Response envelopes and the exception handlers that produce them.

    {"data": ...}
    {"error": {"code": "E_...", "message": "...", "request_id": "..."}}

``request_id`` is taken from the logging context set by RequestIDMiddleware
and omitted when no request is in flight.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from folio.errors import ApiError, ApiErrorCode
from folio.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Framework-raised HTTP errors (unknown route, wrong method, bad body)
HTTP_STATUS_TO_CODE = {
    400: ApiErrorCode.E_INVALID_REQUEST,
    404: ApiErrorCode.E_NOT_FOUND,
    405: ApiErrorCode.E_METHOD_NOT_ALLOWED,
    422: ApiErrorCode.E_INVALID_REQUEST,
}


def success_response(data: Any) -> dict[str, Any]:
    return {"data": data}


def error_response(code: ApiErrorCode, message: str) -> dict[str, Any]:
    """Build the error envelope for ``code``, tagged with the current request ID."""
    error = {"code": code.value, "message": message}
    request_id = get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def _error_json(
    status_code: int,
    code: ApiErrorCode,
    message: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=error_response(code, message), headers=headers
    )


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return _error_json(exc.status_code, exc.code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = HTTP_STATUS_TO_CODE.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    if exc.status_code == 405:
        message = f"Method {request.method} not allowed on {request.url.path}"
    else:
        message = str(exc.detail) if exc.detail else "An error occurred"
    return _error_json(exc.status_code, code, message, headers=getattr(exc, "headers", None))


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """A missing or mistyped body is a 400, not FastAPI's default 422."""
    return _error_json(400, ApiErrorCode.E_INVALID_REQUEST, "Invalid request body")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure server-side; the client only sees E_INTERNAL."""
    logger.exception("http.unhandled_exception", path=request.url.path, error=str(exc))
    return _error_json(500, ApiErrorCode.E_INTERNAL, "Internal server error")
