"""Structured logging configuration using structlog."""

import logging
import sys
from typing import Any

import structlog

# Log fields that may carry member-authored text
_CONTENT_FIELDS = ("content", "body", "text")
_CONTENT_PREVIEW_CHARS = 50


def truncate_content(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Shorten member-authored text so full reviews never land in the logs."""
    for key in _CONTENT_FIELDS:
        value = event_dict.get(key)
        if isinstance(value, str) and len(value) > _CONTENT_PREVIEW_CHARS:
            event_dict[key] = value[:_CONTENT_PREVIEW_CHARS] + "..."
    return event_dict


def configure_logging(
    level: str = "INFO",
    json_format: bool = True,
    service_name: str = "trust-engine",
) -> None:
    """
    Configure structured logging for the engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output JSON; if False, output colored console format
        service_name: Name bound to every log entry
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)

    processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        truncate_content,
        structlog.processors.StackInfoRenderer(),
    ]
    if json_format:
        processors += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=service_name)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_actor_context(request_id: str, user_id: str | None = None, **kwargs: Any) -> None:
    """Bind the request id and acting member to subsequent log entries."""
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        **({"user_id": user_id} if user_id else {}),
        **kwargs,
    )


def clear_actor_context() -> None:
    """Drop per-request log context, keeping the service binding."""
    structlog.contextvars.unbind_contextvars("request_id", "user_id")
