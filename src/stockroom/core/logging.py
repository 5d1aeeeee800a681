"""
Stockroom Logging - structured logging for host and worker.

Both the host process and the worker it supervises log through structlog.
The worker writes info-level events to stdout and errors to stderr; the
host's supervisor reads those lines back and re-emits them at the level
of the stream they came from, so one ``configure_logging`` call per
process is all either side needs.

Manifesto:
    - **Structured:** key/value events instead of formatted strings
    - **Machine-readable:** JSON when not attached to a terminal
    - **Correlated:** request ids and worker pids bound as context

Architecture:
    ::

        ┌────────────────────────────────────────────────────────────┐
        │ configure_logging(level="INFO", json_format=None,          │
        │                   service="stockroom-host")                │
        │     ↓                                                      │
        │ structlog processor chain:                                 │
        │   1. TimeStamper(iso)                                      │
        │   2. merge_contextvars                                     │
        │   3. add_log_level / add_logger_name                       │
        │   4. _add_service_metadata                                 │
        │   5. JSONRenderer (or ConsoleRenderer for a tty)           │
        └────────────────────────────────────────────────────────────┘

Examples:
    >>> from stockroom.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG", service="stockroom-worker")
    >>> logger = get_logger(__name__)
    >>> logger.info("allocation_committed", po="PO1", remaining=1)

Tags:
    logging, structlog, observability, stockroom-core

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

_SERVICE_NAME = "stockroom"


def _add_service_metadata(
    logger: WrappedLogger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add service-level metadata to all logs."""
    event_dict.setdefault("service", _SERVICE_NAME)
    return event_dict


class _LevelRoutedLogger:
    """Print error and critical events to one stream, everything else to another."""

    def __init__(self, out: Any, err: Any) -> None:
        self._out = structlog.PrintLogger(out)
        self._err = structlog.PrintLogger(err)

    def msg(self, message: str) -> None:
        self._out.msg(message)

    def failure(self, message: str) -> None:
        self._err.msg(message)

    debug = info = warning = warn = log = msg
    error = critical = exception = fatal = failure


def configure_logging(
    level: str = "INFO",
    json_format: bool | None = None,
    service: str = "stockroom",
    stream: Any = None,
    error_stream: Any = None,
) -> None:
    """Configure structured logging for the current process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: True for JSON, False for console, None for auto (JSON if not tty)
        service: Service name to include in logs
        stream: Output stream, defaults to ``sys.stdout``
        error_stream: When set, error and critical events go here instead
            of *stream*
    """
    global _SERVICE_NAME
    _SERVICE_NAME = service

    out = stream or sys.stdout
    if json_format is None:
        json_format = not out.isatty()

    processors: list[Processor] = [
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        _add_service_metadata,
    ]

    if json_format:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=out.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper())
        ),
        context_class=dict,
        logger_factory=_logger_factory(out, error_stream),
        cache_logger_on_first_use=False,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=out,
        level=getattr(logging, level.upper()),
    )


def _logger_factory(out: Any, error_stream: Any) -> Any:
    if error_stream is None:
        return structlog.PrintLoggerFactory(file=out)
    return lambda *args: _LevelRoutedLogger(out, error_stream)


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger (usually ``get_logger(__name__)``)."""
    return structlog.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Bind context to include in all subsequent logs."""
    structlog.contextvars.bind_contextvars(**kwargs)


def unbind_context(*keys: str) -> None:
    """Remove specific keys from logging context."""
    structlog.contextvars.unbind_contextvars(*keys)


def clear_context() -> None:
    """Clear all bound context."""
    structlog.contextvars.clear_contextvars()


class LogContext:
    """Context manager for scoped logging context.

    Example:
        with LogContext(request_id="abc123"):
            logger.info("stock_out_requested")
    """

    def __init__(self, **kwargs: Any):
        self._context = kwargs

    def __enter__(self) -> LogContext:
        bind_context(**self._context)
        return self

    def __exit__(self, *args) -> None:
        unbind_context(*self._context.keys())


__all__ = [
    "configure_logging",
    "get_logger",
    "bind_context",
    "unbind_context",
    "clear_context",
    "LogContext",
]
