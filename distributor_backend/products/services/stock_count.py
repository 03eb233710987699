# products/services/stock_count.py

"""
STOCK COUNT RECONCILIATION

Compares a physical count with the system balance under a row lock:
- equal      -> one informational STOCK_COUNT row, balance untouched
- different  -> one ADJUSTMENT_IN / ADJUSTMENT_OUT row, balance := counted
"""

from __future__ import annotations

from dataclasses import dataclass

from django.db import transaction

from products.models import StockMovement
from products.movement_rules import MovementType, ReferenceType

from .exceptions import InvalidStockValueError
from .ledger import apply_stock_change, lock_stock_holder, record_count_snapshot, to_stock_level


@dataclass(frozen=True)
class StockCountResult:
    movement: StockMovement
    system_stock: int
    difference: int

    @property
    def is_adjustment(self) -> bool:
        return self.difference != 0


@transaction.atomic
def reconcile_stock_count(
    *,
    product_id,
    counted_quantity,
    document_number: str = "",
    notes: str = "",
    user=None,
    variant_id=None,
) -> StockCountResult:
    if counted_quantity is None or counted_quantity == "":
        raise InvalidStockValueError("counted_quantity is required")

    counted = to_stock_level(counted_quantity, "counted_quantity")

    holder = lock_stock_holder(product_id, variant_id)
    system_stock = int(holder.stock_quantity or 0)
    difference = counted - system_stock

    if difference == 0:
        movement = record_count_snapshot(
            holder,
            counted=counted,
            performed_by=user,
            document_number=document_number,
            notes=notes,
        )
    else:
        movement_type = (
            MovementType.ADJUSTMENT_IN if difference > 0 else MovementType.ADJUSTMENT_OUT
        )
        movement = apply_stock_change(
            holder,
            new_stock=counted,
            movement_type=movement_type,
            performed_by=user,
            reason=notes or f"Stock count correction ({difference:+d})",
            reference_type=ReferenceType.STOCK_COUNT,
            document_number=document_number,
        )

    return StockCountResult(
        movement=movement,
        system_stock=system_stock,
        difference=difference,
    )
