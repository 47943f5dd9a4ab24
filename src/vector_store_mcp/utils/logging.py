"""Structured logging setup.

Logs always go to stderr: on the stdio transport stdout carries protocol
messages only.
"""

import logging
import re
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

from vector_store_mcp.config.loader import get_settings
from vector_store_mcp.security.credentials import REDACTED, redact

# Context variable for request ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_PATH_KEY_PATTERN = re.compile(r"(/mcp/)[^\s/?#\"]+")


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


def set_request_id(request_id: str | None = None) -> str:
    """Set the request ID for the current context."""
    if request_id is None:
        request_id = str(uuid.uuid4())[:8]
    request_id_var.set(request_id)
    return request_id


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add request ID to log records."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def redact_secrets(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Strip credential values from every string field of a log record."""
    settings = get_settings()
    for key, value in event_dict.items():
        if isinstance(value, str):
            event_dict[key] = redact(value, settings.openai_api_key)
    return event_dict


class RedactingFilter(logging.Filter):
    """Redact credentials from standard library records (uvicorn access lines, httpx).

    Keys can arrive in the /mcp/{api_key} path, which the access log prints.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        cleaned = _PATH_KEY_PATTERN.sub(r"\1" + REDACTED, message)
        cleaned = redact(cleaned, get_settings().openai_api_key)
        if cleaned != message:
            record.msg = cleaned
            record.args = None
        return True


def setup_logging() -> None:
    """Set up structured logging."""
    settings = get_settings()
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_id,
        structlog.processors.format_exc_info,
        redact_secrets,
    ]

    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Standard library loggers (httpx, uvicorn) share the stream
    logging.basicConfig(
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        level=level,
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedactingFilter) for f in handler.filters):
            handler.addFilter(RedactingFilter())


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger."""
    return structlog.get_logger(name)
