"""
Request-scoped context for operations.

Every operation function receives an :class:`OperationContext` as its first
argument. The context carries the document store and allocator (shared by
every request in the process; stores on the same path share one lock), the caller identity
and a request id bound into the logs.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from stockroom.inventory.allocator import InventoryAllocator
from stockroom.store.document import DEFAULT_LOCK_TIMEOUT, DocumentStore, ParseFailurePolicy


@dataclass
class OperationContext:
    """Context passed to every operation function.

    Attributes:
        store: The process-wide document store.
        allocator: Business transactions over ``store``.
        request_id: Unique ID for this operation invocation (auto-generated).
        caller: Origin of the request — ``"ui"``, ``"cli"``, ``"worker"``, ``"sdk"``.
        metadata: Arbitrary key/value pairs forwarded to logging.
    """

    store: DocumentStore
    allocator: InventoryAllocator
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    caller: str = "sdk"
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_path(
        cls,
        path: str | Path,
        *,
        caller: str = "sdk",
        parse_failure_policy: ParseFailurePolicy = "fail",
        keep_backup: bool = True,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ) -> OperationContext:
        store = DocumentStore(
            path,
            parse_failure_policy=parse_failure_policy,
            keep_backup=keep_backup,
            lock_timeout=lock_timeout,
        )
        return cls(store=store, allocator=InventoryAllocator(store), caller=caller)

    def child(self, **metadata: Any) -> OperationContext:
        """Same store and allocator, fresh request id."""
        return replace(self, request_id=str(uuid.uuid4()), metadata={**self.metadata, **metadata})
