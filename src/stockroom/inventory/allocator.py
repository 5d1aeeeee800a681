"""
Stock-out allocation.

An allocation removes exactly one unit from the first ``stockIn`` lot that
matches the requested PO and still has stock, and records the movement at
the head of ``stockOut``. Both changes reach disk in one save or not at all.

Manifesto:
    - **First match wins:** Lots are scanned in stored order. No aggregation
      across lots, no best fit by quantity.
    - **Reject before mutate:** If nothing qualifies the document is not
      saved, so the file stays byte-identical.
    - **Normalise going forward:** ``"5"`` becomes ``4``, numbers stay numbers.
    - **Serialised:** The scan, decrement and save run inside
      ``DocumentStore.transaction()``.

Architecture:
    ::

        allocate(po, recipient, type, note, client=None)
        ┌──────────────────────────────────────────────────────────────┐
        │ Scanning ──► lot found? ──no──► StockUnavailableError        │
        │                 │                (no save, Rejected)         │
        │                yes                                           │
        │                 ▼                                            │
        │ Found: stock - 1, resolve client, build record               │
        │                 ▼                                            │
        │ Commit: stockOut.insert(0, record); save on txn exit         │
        │                 ▼                                            │
        │ Done: Allocation(record, remaining_stock)                    │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> allocator = InventoryAllocator(store)
    >>> result = allocator.allocate("PO1", recipient="Bob", type="out", note="")
    >>> result.remaining_stock
    1

Tags:
    inventory, allocation, transaction, stockroom-inventory

Doc-Types:
    - API Reference
    - Business Rules
"""

from __future__ import annotations

import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from stockroom.core.errors import RecordNotFoundError, StockUnavailableError, ValidationError
from stockroom.core.logging import get_logger
from stockroom.core.timestamps import generate_record_id, local_today
from stockroom.store.document import DocumentStore
from stockroom.store.models import StockLot, StockOutRecord, as_text

logger = get_logger(__name__)

Number = int | float


def parse_quantity(value: Any) -> Number:
    """Read a stock quantity stored as a number or a numeric string.

    Anything else (``None``, booleans, non-numeric text, NaN) counts as zero.

    >>> parse_quantity(" 3 "), parse_quantity(2.5), parse_quantity("n/a")
    (3, 2.5, 0)
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0
        try:
            return int(text)
        except ValueError:
            pass
        try:
            number = float(text)
        except ValueError:
            return 0
        return _normalise(number) if math.isfinite(number) else 0
    return 0


def _normalise(number: Number) -> Number:
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if isinstance(value, str):
        try:
            return math.isfinite(float(value.strip()))
        except ValueError:
            return False
    return False


def _blank(value: Any) -> bool:
    return not as_text(value).strip()


@dataclass(frozen=True, slots=True)
class Allocation:
    """Outcome of a committed stock-out."""

    record: StockOutRecord
    remaining_stock: Number
    lot_index: int

    def to_dict(self) -> dict[str, Any]:
        return {"record": self.record.to_dict(), "remainingStock": self.remaining_stock}


@dataclass(frozen=True, slots=True)
class Reversal:
    """Outcome of an undone stock-out."""

    record: StockOutRecord
    restored_stock: Number
    lot_index: int

    def to_dict(self) -> dict[str, Any]:
        return {"record": self.record.to_dict(), "restoredStock": self.restored_stock}


class InventoryAllocator:
    """Business transactions over a ``DocumentStore``.

    Args:
        store: The document store all operations commit through.
        id_factory: Produces allocation ids (default: strictly increasing
            millisecond timestamps).
        today: Produces the local calendar date for new records.
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        id_factory: Callable[[], str] = generate_record_id,
        today: Callable[[], str] = local_today,
    ) -> None:
        self.store = store
        self._id_factory = id_factory
        self._today = today

    def allocate(
        self,
        po: str,
        recipient: str,
        type: str,
        note: str,
        client: str | None = None,
    ) -> Allocation:
        """Take one unit from the first lot of *po* with stock left.

        Raises:
            StockUnavailableError: no lot matches *po* with positive stock.
            StorageError / ParseError: the document could not be read or saved.
        """
        with self.store.transaction() as document:
            index, lot = self._find_lot(document.stock_in, po)

            remaining = _normalise(parse_quantity(lot.stock) - 1)
            lot.stock = remaining

            effective_client = client if not _blank(client) else as_text(lot.client)
            record = StockOutRecord(
                id=self._id_factory(),
                date=self._today(),
                po=po,
                client=effective_client,
                recipient=recipient or "",
                type=type or "",
                note=note or "",
            )
            document.stock_out.insert(0, record)

        logger.info(
            "allocation_committed",
            po=po,
            record_id=record.id,
            lot_index=index,
            remaining=remaining,
        )
        return Allocation(record=record, remaining_stock=remaining, lot_index=index)

    def import_collection(self, name: str, items: list[dict[str, Any]]) -> int:
        """Replace one collection wholesale. Returns the number of items stored."""
        return self.store.replace_collection(name, items)

    def receive(self, lot: dict[str, Any]) -> StockLot:
        """Append a new lot to ``stockIn``.

        The lot needs a non-blank ``PO`` and a non-negative numeric ``stock``.
        """
        if not isinstance(lot, dict):
            raise ValidationError("Lot must be an object")
        if _blank(lot.get("PO")):
            raise ValidationError("PO is required", field="PO")

        quantity = lot.get("stock")
        if not _is_numeric(quantity) or parse_quantity(quantity) < 0:
            raise ValidationError("stock must be a non-negative number", field="stock", value=quantity)

        try:
            new_lot = StockLot.model_validate({**lot, "stock": parse_quantity(quantity)})
        except PydanticValidationError as exc:
            raise ValidationError(f"Malformed lot: {exc}", cause=exc) from exc

        with self.store.transaction() as document:
            document.stock_in.append(new_lot)

        logger.info("lot_received", po=new_lot.po, stock=new_lot.stock)
        return new_lot

    def undo_allocation(self, record_id: str) -> Reversal:
        """Reverse one stock-out: drop the record and put its unit back.

        The unit returns to the first lot of the record's PO that still has
        stock, or to the last lot of that PO when all of them are empty.

        Raises:
            RecordNotFoundError: no ``stockOut`` record has *record_id*.
            ValidationError: no ``stockIn`` lot carries the record's PO.
        """
        key = as_text(record_id)
        with self.store.transaction() as document:
            position = next(
                (i for i, r in enumerate(document.stock_out) if as_text(r.id) == key), None
            )
            if position is None:
                raise RecordNotFoundError("stockOut", key)
            record = document.stock_out[position]
            po = as_text(record.po)

            candidates = [i for i, lot in enumerate(document.stock_in) if as_text(lot.po) == po]
            if not candidates:
                raise ValidationError(
                    f"No stockIn lot for PO {po!r} to return the unit to", field="PO", value=po
                ).with_context(po=po)
            index = next(
                (i for i in candidates if parse_quantity(document.stock_in[i].stock) > 0),
                candidates[-1],
            )
            lot = document.stock_in[index]
            restored = _normalise(parse_quantity(lot.stock) + 1)
            lot.stock = restored
            del document.stock_out[position]

        logger.info("allocation_undone", po=po, record_id=key, lot_index=index, restored=restored)
        return Reversal(record=record, restored_stock=restored, lot_index=index)

    def update_lot(
        self,
        index: int,
        *,
        stock: Any = None,
        note: str | None = None,
        client: str | None = None,
    ) -> StockLot:
        """Edit the lot at position *index* in ``stockIn``.

        Only the arguments given are changed; every other field is kept.
        """
        changes: dict[str, Any] = {}
        if stock is not None:
            if not _is_numeric(stock) or parse_quantity(stock) < 0:
                raise ValidationError("stock must be a non-negative number", field="stock", value=stock)
            changes["stock"] = parse_quantity(stock)
        if note is not None:
            changes["note"] = note
        if client is not None:
            changes["client"] = client
        if not changes:
            raise ValidationError("Nothing to update", field="stock")

        with self.store.transaction() as document:
            if not 0 <= index < len(document.stock_in):
                raise RecordNotFoundError("stockIn", index)
            updated = StockLot.model_validate({**document.stock_in[index].to_dict(), **changes})
            document.stock_in[index] = updated

        logger.info("lot_updated", lot_index=index, fields=sorted(changes))
        return updated

    def stock_levels(self) -> dict[str, Number]:
        """Total parsed stock per PO, in first-seen order."""
        document = self.store.get_or_init()
        levels: dict[str, Number] = {}
        for lot in document.stock_in:
            po = as_text(lot.po)
            levels[po] = _normalise(levels.get(po, 0) + parse_quantity(lot.stock))
        return levels

    @staticmethod
    def _find_lot(lots: list[StockLot], po: str) -> tuple[int, StockLot]:
        for index, lot in enumerate(lots):
            if as_text(lot.po) == po and parse_quantity(lot.stock) > 0:
                return index, lot
        logger.info("allocation_rejected", po=po, reason="stock_unavailable")
        raise StockUnavailableError(po)
