"""Structured logging configuration for mailtag.

Uses structlog on top of the standard library logging module. Supports a
per-message correlation ID (message_id) via contextvars so every entry
emitted while one email is being analysed can be traced back to it.

Usage:
    from mailtag.core.logging import get_logger, set_correlation_id

    logger = get_logger(__name__)

    set_correlation_id("msg-42")
    logger.info("prompt_built", prompt_length=1234)
"""

import logging
import sys
from contextvars import ContextVar
from typing import Any, TextIO

import structlog

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def set_correlation_id(correlation_id: str | None) -> None:
    """Set the correlation ID for the current context.

    Args:
        correlation_id: Identifier of the message being processed, or None to clear
    """
    _correlation_id.set(correlation_id)


def get_correlation_id() -> str | None:
    """Get the current correlation ID, if set."""
    return _correlation_id.get()


def add_correlation_id(
    logger: structlog.types.WrappedLogger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor to add the correlation ID to log entries."""
    correlation_id = _correlation_id.get()
    if correlation_id is not None:
        event_dict["message_id"] = correlation_id
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    json_output: bool = True,
    stream: TextIO | None = None,
    cache_loggers: bool = True,
) -> None:
    """Configure structlog for the application.

    Safe to call more than once; each call replaces the previous handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON; if False, output human-readable format
        stream: Where log lines are written (default stdout). The CLI passes
            sys.stderr so command output on stdout stays clean.
        cache_loggers: Cache bound loggers on first use. Turn off when the
            configuration is provisional and will be replaced.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=getattr(logging, log_level.upper()),
        force=True,
    )

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        add_correlation_id,
    ]

    if json_output:
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=cache_loggers,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        A structlog BoundLogger instance

    Example:
        logger = get_logger(__name__)
        logger.warning("body_truncated", original_length=9000, budget=4000)
    """
    return structlog.get_logger(name)
