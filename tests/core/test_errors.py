"""Tests for stockroom.core.errors module."""

import json

import pytest

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
    categorize_error,
    is_retryable,
)


class TestErrorContext:
    """Test ErrorContext dataclass."""

    def test_create_empty_context(self):
        ctx = ErrorContext()
        assert ctx.operation is None
        assert ctx.path is None
        assert ctx.metadata == {}
        assert ctx.to_dict() == {}

    def test_to_dict_skips_unset_fields(self):
        ctx = ErrorContext(operation="load", po="PO1", metadata={"attempt": 2})
        assert ctx.to_dict() == {"operation": "load", "po": "PO1", "attempt": 2}


class TestStockroomError:
    """Test the base error."""

    def test_defaults(self):
        error = StockroomError("boom")
        assert str(error) == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.code == "INTERNAL"

    def test_with_context_sets_known_fields_and_metadata(self):
        error = StockroomError("boom").with_context(operation="save", path="/x", attempt=3)
        assert error.context.operation == "save"
        assert error.context.path == "/x"
        assert error.context.metadata == {"attempt": 3}

    def test_cause_is_chained(self):
        original = OSError("disk full")
        error = StorageError("write failed", cause=original)
        assert error.__cause__ is original
        assert error.to_dict()["cause"] == "disk full"

    def test_to_dict_is_json_serialisable(self):
        error = StockUnavailableError("PO9").with_context(operation="allocate")
        payload = error.to_dict()
        json.dumps(payload)
        assert payload["code"] == "STOCK_UNAVAILABLE"
        assert payload["error_type"] == "StockUnavailableError"
        assert payload["context"] == {"operation": "allocate", "po": "PO9"}
        assert payload["field"] == "PO"


class TestErrorKinds:
    """Each error kind carries its own code and category."""

    @pytest.mark.parametrize(
        "error, code, category",
        [
            (StorageError("x"), "STORAGE_ERROR", ErrorCategory.STORAGE),
            (DocumentNotFoundError("/data/inventory.json"), "DOCUMENT_NOT_FOUND", ErrorCategory.STORAGE),
            (ParseError("x"), "PARSE_ERROR", ErrorCategory.PARSE),
            (ValidationError("x"), "VALIDATION_FAILED", ErrorCategory.VALIDATION),
            (StockUnavailableError("PO1"), "STOCK_UNAVAILABLE", ErrorCategory.VALIDATION),
            (UnknownCollectionError("shipments"), "UNKNOWN_COLLECTION", ErrorCategory.VALIDATION),
            (ConfigError("x"), "CONFIG_ERROR", ErrorCategory.CONFIG),
            (ProcessSpawnError("x"), "PROCESS_SPAWN_FAILED", ErrorCategory.PROCESS),
        ],
    )
    def test_code_and_category(self, error, code, category):
        assert error.code == code
        assert error.category == category
        assert isinstance(error, StockroomError)

    def test_document_not_found_records_path(self):
        error = DocumentNotFoundError("/data/inventory.json")
        assert error.context.path == "/data/inventory.json"
        assert error.retryable is False

    def test_unknown_collection_records_name(self):
        error = UnknownCollectionError("shipments")
        assert error.name == "shipments"
        assert error.context.collection == "shipments"

    def test_storage_errors_are_retryable(self):
        assert is_retryable(StorageError("x")) is True
        assert is_retryable(ParseError("x")) is False
        assert is_retryable(OSError("x")) is True
        assert is_retryable(RuntimeError("x")) is False


class TestCategorizeError:
    def test_stockroom_errors_use_their_category(self):
        assert categorize_error(ParseError("x")) == ErrorCategory.PARSE

    def test_builtin_errors(self):
        assert categorize_error(PermissionError("x")) == ErrorCategory.STORAGE
        assert categorize_error(ValueError("x")) == ErrorCategory.VALIDATION
        assert categorize_error(KeyError("x")) == ErrorCategory.INTERNAL
