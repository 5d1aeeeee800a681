"""
Structured error types for Stockroom.

Every failure the inventory backend can report is a ``StockroomError``
subclass carrying a category, a retry hint, structured context and an
optional chained cause. The ops layer turns these into tagged failures
(code + message) for the front end; only ``ProcessSpawnError`` is allowed
to abort the host.

Manifesto:
    - **Typed hierarchy:** One error type per failure kind the caller can act on
    - **Explicit retry semantics:** Each error knows whether a retry can help
    - **Rich context:** Errors carry the PO, path or collection involved
    - **Error chaining:** Original ``OSError``/``JSONDecodeError`` kept as cause

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       StockroomError                             │
        │  (category, retryable, context, cause)                          │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  StorageError          ParseError        ValidationError         │
        │  (STORAGE)             (PARSE)           (VALIDATION)            │
        │       │                                       │                  │
        │  DocumentNotFoundError              StockUnavailableError        │
        │                                     UnknownCollectionError       │
        │                                                                  │
        │  ProcessSpawnError     ConfigError                               │
        │  (PROCESS, fatal)      (CONFIG)                                  │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> err = StockUnavailableError("PO1")
    >>> err.code
    'STOCK_UNAVAILABLE'
    >>> err.to_dict()["category"]
    'VALIDATION'

Tags:
    error-handling, exception-hierarchy, stockroom-core, observability

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """
    Standard error categories for classification and routing.

    Attributes:
        STORAGE: Disk, permissions, missing directory
        PARSE: Persisted content is not a valid document
        VALIDATION: Business rule or input shape violations
        CONFIG: Missing or invalid settings
        PROCESS: Worker spawn or supervision failures
        INTERNAL: Bugs, unexpected state
    """

    STORAGE = "STORAGE"
    PARSE = "PARSE"
    VALIDATION = "VALIDATION"
    CONFIG = "CONFIG"
    PROCESS = "PROCESS"
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        operation: Name of the store/allocator operation that failed
        path: Document file involved, if any
        po: Purchase order involved, if any
        collection: Document collection involved, if any
        metadata: Additional key-value pairs
    """

    operation: str | None = None
    path: str | None = None
    po: str | None = None
    collection: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["operation", "path", "po", "collection"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class StockroomError(Exception):
    """
    Base exception for all Stockroom errors.

    Subclasses set ``default_category``, ``default_retryable`` and ``code``
    so that raising sites only supply the message and context.

    Examples:
        >>> error = StockroomError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(operation="load").context.operation
        'load'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> StockroomError:
        """
        Add context to this error (fluent API).

        Usage:
            raise StorageError("write failed").with_context(path=str(path))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(StockroomError):
    """File creation, read or write failure (permissions, disk, directory)."""

    default_category = ErrorCategory.STORAGE
    default_retryable = True
    code = "STORAGE_ERROR"


class DocumentNotFoundError(StorageError):
    """The document file does not exist yet."""

    default_retryable = False
    code = "DOCUMENT_NOT_FOUND"

    def __init__(self, path: str, **kwargs: Any):
        super().__init__(f"Document not found: {path}", **kwargs)
        self.context.path = path


# =============================================================================
# PARSE ERRORS
# =============================================================================


class ParseError(StockroomError):
    """Persisted content exists but is not a well-formed document."""

    default_category = ErrorCategory.PARSE
    default_retryable = False
    code = "PARSE_ERROR"


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(StockroomError):
    """
    Input or business rule violation.

    Never retryable - the request or the data must change.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False
    code = "VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class StockUnavailableError(ValidationError):
    """No stock-in lot matches the PO with positive stock."""

    code = "STOCK_UNAVAILABLE"

    def __init__(self, po: str, **kwargs: Any):
        super().__init__(f"No stock available for PO {po!r}", field="PO", value=po, **kwargs)
        self.po = po
        self.context.po = po


class UnknownCollectionError(ValidationError):
    """Import targeted a collection the document does not have."""

    code = "UNKNOWN_COLLECTION"

    def __init__(self, name: str, **kwargs: Any):
        super().__init__(f"Unknown collection: {name!r}", field="collection", value=name, **kwargs)
        self.name = name
        self.context.collection = name


class RecordNotFoundError(ValidationError):
    """No record matches the id or index a caller asked for."""

    code = "RECORD_NOT_FOUND"

    def __init__(self, collection: str, key: Any, **kwargs: Any):
        super().__init__(f"No {collection} record {key!r}", field="id", value=key, **kwargs)
        self.key = key
        self.context.collection = collection


# =============================================================================
# CONFIGURATION / PROCESS ERRORS
# =============================================================================


class ConfigError(StockroomError):
    """Configuration must be fixed before the operation can succeed."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False
    code = "CONFIG_ERROR"


class ProcessSpawnError(StockroomError):
    """
    The worker process could not be started.

    Fatal: the host aborts startup, there is no retry.
    """

    default_category = ErrorCategory.PROCESS
    default_retryable = False
    code = "PROCESS_SPAWN_FAILED"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def is_retryable(error: Exception) -> bool:
    """Check if an error is retryable."""
    if isinstance(error, StockroomError):
        return error.retryable
    return isinstance(error, OSError)


def categorize_error(error: Exception) -> ErrorCategory:
    """Get the category of an error."""
    if isinstance(error, StockroomError):
        return error.category
    if isinstance(error, OSError):
        return ErrorCategory.STORAGE
    if isinstance(error, ValueError):
        return ErrorCategory.VALIDATION
    return ErrorCategory.INTERNAL


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "StockroomError",
    "StorageError",
    "DocumentNotFoundError",
    "ParseError",
    "ValidationError",
    "StockUnavailableError",
    "UnknownCollectionError",
    "RecordNotFoundError",
    "ConfigError",
    "ProcessSpawnError",
    "is_retryable",
    "categorize_error",
]
