"""Structured logging configuration using structlog.

Provides JSON-formatted logs with consistent context including:
- request_id: Correlation ID for request tracing
- publication: Sanitized base path of the publication being processed
- timestamp: ISO8601 formatted timestamp

Usage:
    from folio.logging import get_logger, configure_logging

    # Configure once at startup
    configure_logging()

    # Get a logger for a module
    logger = get_logger(__name__)
    logger.info("publish.started", filename="book.epub")
"""

import logging
import sys
from contextvars import ContextVar

import structlog

# Context variables for request-scoped logging
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
publication_var: ContextVar[str | None] = ContextVar("publication", default=None)


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """Add request context to all log entries.

    Injects all non-None ContextVar values into the log event dict.
    """
    request_id = request_id_var.get()
    publication = publication_var.get()

    if request_id:
        event_dict["request_id"] = request_id
    if publication:
        event_dict["publication"] = publication

    return event_dict


def configure_logging(json_format: bool = True) -> None:
    """Configure structlog for the application.

    Args:
        json_format: If True, output JSON logs. If False, output console-friendly logs.
    """
    shared_processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # Route stdlib logging through the same renderer
    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.INFO)

    # Silence noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the given name.

    Args:
        name: Logger name (typically __name__).

    Returns:
        A bound structlog logger.
    """
    return structlog.get_logger(name)


def set_request_context(request_id: str | None) -> None:
    """Set the request correlation ID for the current context."""
    request_id_var.set(request_id)


def set_publication_context(publication: str | None) -> None:
    """Set the publication being processed for the current context.

    Args:
        publication: Sanitized base path of the publication.
    """
    publication_var.set(publication)


def clear_request_context() -> None:
    """Clear all request-scoped context at the end of a request."""
    request_id_var.set(None)
    publication_var.set(None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return request_id_var.get()
