"""
Dispatch layer between the front end and the inventory core.

Every function takes an :class:`OperationContext` and returns an
:class:`OperationResult`; domain failures come back tagged, not raised.
"""

from stockroom.ops.context import OperationContext
from stockroom.ops.inventory import (
    get_data,
    get_stock_levels,
    import_data,
    receive_stock,
    save_stock_out,
    undo_stock_out,
    update_lot,
)
from stockroom.ops.requests import ImportRequest, StockOutRequest, UpdateLotRequest
from stockroom.ops.result import OperationError, OperationResult

__all__ = [
    "ImportRequest",
    "OperationContext",
    "OperationError",
    "OperationResult",
    "StockOutRequest",
    "UpdateLotRequest",
    "get_data",
    "get_stock_levels",
    "import_data",
    "receive_stock",
    "save_stock_out",
    "undo_stock_out",
    "update_lot",
]
