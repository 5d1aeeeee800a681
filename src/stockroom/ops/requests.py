"""
Typed request objects for operations.

Each dataclass represents the *input* contract for a single operation
function. Requests carry only transport-agnostic data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class StockOutRequest:
    """Request for :func:`stockroom.ops.inventory.save_stock_out`.

    Attributes:
        po: Purchase order to allocate against.
        recipient: Who receives the unit.
        type: Free-form movement type (``"out"``, ``"sample"``, …).
        note: Free-form note.
        client: Overrides the lot's client when non-blank.
    """

    po: str
    recipient: str = ""
    type: str = ""
    note: str = ""
    client: str | None = None


@dataclass(frozen=True, slots=True)
class ImportRequest:
    """Request for :func:`stockroom.ops.inventory.import_data`."""

    collection: str
    items: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class UpdateLotRequest:
    """Request for :func:`stockroom.ops.inventory.update_lot`.

    ``None`` leaves a field unchanged.
    """

    index: int
    stock: Any = None
    note: str | None = None
    client: str | None = None
