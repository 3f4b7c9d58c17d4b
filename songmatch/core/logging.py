"""
Structured logging configuration using structlog.

- Structured key/value events for every repository and service call
- Request-scoped context (request ids, viewer ids) through contextvars
- Console output in development, JSON everywhere else
"""

import sys
import logging
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name
from structlog.processors import (
    TimeStamper,
    add_log_level,
    JSONRenderer,
    StackInfoRenderer,
    format_exc_info,
)

from songmatch.core.config import get_settings


def configure_logging() -> None:
    """
    Configure structured logging for the application.

    Development gets a coloured console renderer, every other environment
    gets JSON lines for log aggregation.
    """
    settings = get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        TimeStamper(fmt="ISO"),
        add_log_level,
        add_logger_name,
        StackInfoRenderer(),
        format_exc_info,
    ]

    if settings.ENVIRONMENT == "development":
        processors = shared_processors + [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        processors = shared_processors + [JSONRenderer()]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    """
    Get a structured logger with optional initial context values.

    Args:
        name: Logger name (typically __name__)
        **initial_values: Initial context values to bind to the logger

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger(name)

    if initial_values:
        logger = logger.bind(**initial_values)

    return logger


class LoggingContext:
    """
    Context manager for temporary logging context.

    Usage:
        with LoggingContext(request_id="123", viewer_id="u-456"):
            logger.info("Assembling feed")
            # All logs within this context will include request_id and viewer_id
    """

    def __init__(self, **context: Any):
        self.context = context
        self.tokens = None

    def __enter__(self) -> "LoggingContext":
        self.tokens = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        structlog.contextvars.reset_contextvars(**self.tokens)
