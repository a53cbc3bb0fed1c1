"""Structured logging utilities for KCP-GUARD."""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from kcpguard.core.config import LoggingConfig


def _processors(format: str) -> list[Any]:
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if format == "json":
        return [
            *shared,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [*shared, structlog.dev.ConsoleRenderer()]


def setup_logging(level: str = "INFO", format: str = "json", output: str = "stdout") -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json or console)
        output: Output destination (stdout or stderr)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    stream = sys.stdout if output == "stdout" else sys.stderr

    logging.basicConfig(format="%(message)s", stream=stream, level=log_level)

    structlog.configure(
        processors=_processors(format),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=stream),
        cache_logger_on_first_use=True,
    )


def setup_logging_from_config(config: "LoggingConfig") -> None:
    """Configure structured logging from the logging config section."""
    setup_logging(level=config.level, format=config.format, output=config.output)


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structured logger instance
    """
    return structlog.get_logger(name)


@contextmanager
def bound_context(**kwargs: Any) -> Iterator[None]:
    """Bind context fields to every log line emitted inside the block.

    Used to tag all output of one health check invocation with the cluster
    and check being run.

    Args:
        **kwargs: Context fields to bind
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield


def log_error(
    logger: structlog.BoundLogger,
    error: Exception,
    operation: str | None = None,
    **kwargs: Any,
) -> None:
    """Log an error with structured context.

    Args:
        logger: Logger instance
        error: Exception instance
        operation: Operation name (optional)
        **kwargs: Additional context fields
    """
    context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
        **kwargs,
    }

    if operation:
        context["operation"] = operation

    logger.error("error_occurred", **context)
