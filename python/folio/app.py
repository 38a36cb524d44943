"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, request-id middleware, and routes.

Middleware Ordering:
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST (via add_request_id_middleware) so it
  runs FIRST and every response, including malformed-body rejections,
  carries X-Request-ID
"""

import json

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from folio.api.routes import create_api_router
from folio.config import get_settings
from folio.errors import ApiError, ApiErrorCode
from folio.logging import configure_logging, get_logger
from folio.middleware.request_id import RequestIDMiddleware
from folio.responses import (
    api_error_handler,
    error_response,
    http_exception_handler,
    unhandled_exception_handler,
    validation_error_handler,
)

logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_json)

    app = FastAPI(
        title="Folio Publisher",
        description="Publishes EPUB files as Readium web publications on Supabase Storage",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Reject malformed JSON bodies before they reach route handlers."""
        if request.method in ("POST", "PUT", "PATCH"):
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except json.JSONDecodeError:
                        return JSONResponse(
                            status_code=400,
                            content=error_response(
                                ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                            ),
                        )
        return await call_next(request)

    app.include_router(create_api_router())

    logger.info(
        "app.created",
        env=settings.folio_env.value,
        storage_configured=settings.storage_configured,
    )
    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    Call this after all other middleware is added, so it runs first.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
