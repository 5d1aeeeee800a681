"""
Inventory operations.

The three entry points the front end calls (``get_data``,
``save_stock_out``, ``import_data``) plus stock-in, undo and lot-edit
helpers. Wraps
:class:`~stockroom.inventory.allocator.InventoryAllocator` and turns every
``StockroomError`` into a tagged failure.
"""

from __future__ import annotations

from typing import Any

from stockroom.core.errors import StockroomError, categorize_error, is_retryable
from stockroom.core.logging import LogContext, get_logger
from stockroom.ops.context import OperationContext
from stockroom.ops.requests import ImportRequest, StockOutRequest, UpdateLotRequest
from stockroom.ops.result import OperationResult, start_timer

logger = get_logger(__name__)


def _internal_failure(op: str, summary: str, exc: Exception, elapsed_ms: float) -> OperationResult[Any]:
    """Tag an unexpected exception, keeping whether a retry could help."""
    logger.exception("op_failed", op=op, error=str(exc))
    return OperationResult.fail(
        "INTERNAL",
        f"{summary}: {exc}",
        category=categorize_error(exc),
        retryable=is_retryable(exc),
        elapsed_ms=elapsed_ms,
    )


def get_data(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Full snapshot of the document."""
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            document = ctx.store.get_or_init()
            return OperationResult.ok(document.to_dict(), elapsed_ms=timer.elapsed_ms)
        except StockroomError as exc:
            logger.warning("op_failed", op="get_data", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("get_data", "Failed to read data", exc, timer.elapsed_ms)


def save_stock_out(
    ctx: OperationContext,
    request: StockOutRequest,
) -> OperationResult[dict[str, Any]]:
    """Allocate one unit against ``request.po``.

    Success data: ``{"success": True, "record": {...}, "remainingStock": n}``.
    Failure code ``STOCK_UNAVAILABLE`` when no lot has stock for the PO.
    """
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            allocation = ctx.allocator.allocate(
                request.po,
                recipient=request.recipient,
                type=request.type,
                note=request.note,
                client=request.client,
            )
            return OperationResult.ok(
                {"success": True, **allocation.to_dict()},
                elapsed_ms=timer.elapsed_ms,
            )
        except StockroomError as exc:
            logger.warning("op_failed", op="save_stock_out", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("save_stock_out", "Failed to save stock out", exc, timer.elapsed_ms)


def import_data(
    ctx: OperationContext,
    request: ImportRequest,
) -> OperationResult[dict[str, Any]]:
    """Replace one collection wholesale.

    Unknown collection names are rejected (``UNKNOWN_COLLECTION``) before
    the document is read or written.
    """
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            count = ctx.allocator.import_collection(request.collection, request.items)
            return OperationResult.ok(
                {"success": True, "count": count}, elapsed_ms=timer.elapsed_ms
            )
        except StockroomError as exc:
            logger.warning("op_failed", op="import_data", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("import_data", "Import failed", exc, timer.elapsed_ms)


def receive_stock(
    ctx: OperationContext,
    lot: dict[str, Any],
) -> OperationResult[dict[str, Any]]:
    """Append a lot to ``stockIn``."""
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            new_lot = ctx.allocator.receive(lot)
            return OperationResult.ok(new_lot.to_dict(), elapsed_ms=timer.elapsed_ms)
        except StockroomError as exc:
            logger.warning("op_failed", op="receive_stock", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("receive_stock", "Failed to receive stock", exc, timer.elapsed_ms)


def get_stock_levels(ctx: OperationContext) -> OperationResult[dict[str, Any]]:
    """Remaining stock per PO."""
    timer = start_timer()
    try:
        return OperationResult.ok(ctx.allocator.stock_levels(), elapsed_ms=timer.elapsed_ms)
    except StockroomError as exc:
        return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)


def undo_stock_out(ctx: OperationContext, record_id: str) -> OperationResult[dict[str, Any]]:
    """Reverse a stock-out and return its unit to stock.

    Success data: ``{"success": True, "record": {...}, "restoredStock": n}``.
    Failure code ``RECORD_NOT_FOUND`` when no record has *record_id*.
    """
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            reversal = ctx.allocator.undo_allocation(record_id)
            return OperationResult.ok(
                {"success": True, **reversal.to_dict()},
                elapsed_ms=timer.elapsed_ms,
            )
        except StockroomError as exc:
            logger.warning("op_failed", op="undo_stock_out", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("undo_stock_out", "Failed to undo stock out", exc, timer.elapsed_ms)


def update_lot(ctx: OperationContext, request: UpdateLotRequest) -> OperationResult[dict[str, Any]]:
    """Edit stock, note or client of one ``stockIn`` lot."""
    timer = start_timer()
    with LogContext(request_id=ctx.request_id, caller=ctx.caller):
        try:
            lot = ctx.allocator.update_lot(
                request.index,
                stock=request.stock,
                note=request.note,
                client=request.client,
            )
            return OperationResult.ok(lot.to_dict(), elapsed_ms=timer.elapsed_ms)
        except StockroomError as exc:
            logger.warning("op_failed", op="update_lot", **exc.to_dict())
            return OperationResult.from_error(exc, elapsed_ms=timer.elapsed_ms)
        except Exception as exc:
            return _internal_failure("update_lot", "Failed to update lot", exc, timer.elapsed_ms)
