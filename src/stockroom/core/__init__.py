"""Stockroom Core -- errors, logging, settings and small shared helpers.

Architecture::

    errors.py          Structured error hierarchy (StockroomError and kinds)
    logging.py         structlog configuration + context binding
    settings.py        StockroomSettings (pydantic-settings, STOCKROOM_ env)
    paths.py           Document path resolution for host and worker
    timestamps.py      Allocation ids and local calendar dates
"""

from stockroom.core.errors import (
    ConfigError,
    DocumentNotFoundError,
    ErrorCategory,
    ErrorContext,
    ParseError,
    ProcessSpawnError,
    StockroomError,
    StockUnavailableError,
    StorageError,
    UnknownCollectionError,
    ValidationError,
)
from stockroom.core.logging import configure_logging, get_logger

__all__ = [
    "ConfigError",
    "DocumentNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "ParseError",
    "ProcessSpawnError",
    "StockroomError",
    "StockUnavailableError",
    "StorageError",
    "UnknownCollectionError",
    "ValidationError",
    "configure_logging",
    "get_logger",
]
