from .bulk_updates import apply_bulk_stock_rows, record_bulk_change
from .ledger import (
    archive_movements,
    assign_initial_stock,
    record_manual_movement,
    record_stock_change,
)
from .reservations import apply_order_stock, release_stock, reserve_stock
from .stock_count import reconcile_stock_count

__all__ = [
    "record_stock_change",
    "assign_initial_stock",
    "record_manual_movement",
    "archive_movements",
    "reserve_stock",
    "release_stock",
    "apply_order_stock",
    "reconcile_stock_count",
    "record_bulk_change",
    "apply_bulk_stock_rows",
]
