"""
Shared pytest fixtures and configuration for stockroom tests.

This module provides:
- Temporary document stores and allocators
- A recording logger for supervisor output assertions
- structlog reset between tests (CLI tests reconfigure it)
"""

import json
import sys
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

# Ensure stockroom package is importable
SRC_DIR = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(SRC_DIR))

from stockroom.inventory.allocator import InventoryAllocator
from stockroom.ops.context import OperationContext
from stockroom.store.document import DocumentStore


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Mark tests without an explicit marker as unit tests."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore default structlog config after each test."""
    yield
    structlog.reset_defaults()


# =============================================================================
# Store fixtures
# =============================================================================


@pytest.fixture
def doc_path(tmp_path: Path) -> Path:
    return tmp_path / "data" / "inventory.json"


@pytest.fixture
def store(doc_path: Path) -> DocumentStore:
    return DocumentStore(doc_path)


@pytest.fixture
def allocator(store: DocumentStore) -> InventoryAllocator:
    counter = iter(range(1_700_000_000_000, 1_800_000_000_000))
    return InventoryAllocator(
        store,
        id_factory=lambda: str(next(counter)),
        today=lambda: "2026-10-18",
    )


@pytest.fixture
def ctx(store: DocumentStore, allocator: InventoryAllocator) -> OperationContext:
    return OperationContext(store=store, allocator=allocator, caller="test")


@pytest.fixture
def write_document(doc_path: Path):
    """Write raw JSON content to the document path."""

    def _write(content: Any) -> Path:
        doc_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, (bytes, str)):
            data = content.encode("utf-8") if isinstance(content, str) else content
            doc_path.write_bytes(data)
        else:
            doc_path.write_text(json.dumps(content), encoding="utf-8")
        return doc_path

    return _write


# =============================================================================
# Logging
# =============================================================================


class RecordingLog:
    """Stand-in for a structlog logger that keeps every event."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    def _record(self, level: str, event: str, **kw: Any) -> None:
        self.events.append({"level": level, "event": event, **kw})

    def debug(self, event: str, **kw: Any) -> None:
        self._record("debug", event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._record("info", event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._record("warning", event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._record("error", event, **kw)

    def named(self, event: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]

    def output_lines(self, stream: str) -> list[str]:
        return [e["line"] for e in self.named("worker_output") if e["stream"] == stream]


@pytest.fixture
def recording_log() -> RecordingLog:
    return RecordingLog()
