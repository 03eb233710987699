# products/services/bulk_updates.py

"""
BULK (EXCEL) STOCK UPDATE TRACKING

The import collaborator parses files; this module only receives resolved
rows and records them.

Policy:
- operation "import" -> EXCEL_IMPORT (may only increase stock)
- anything else      -> EXCEL_UPDATE (direction follows the change)
- negative balances are rejected, never clamped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.db import transaction

from products.models import StockMovement
from products.movement_rules import MovementType, ReferenceType

from .exceptions import InvalidStockValueError, StockConflictError
from .ledger import (
    commit_stock_level,
    holder_key,
    lock_stock_holder,
    record_stock_change,
    to_stock_level,
)

logger = logging.getLogger(__name__)

OPERATION_IMPORT = "import"


@dataclass(frozen=True)
class BulkRow:
    product_id: object
    new_stock: int
    variant_id: Optional[object] = None
    previous_stock: Optional[int] = None


@dataclass(frozen=True)
class BulkUpdateResult:
    movements: tuple
    unchanged: int

    @property
    def changed(self) -> int:
        return len(self.movements)


def movement_type_for_operation(operation) -> str:
    if str(operation or "").strip().lower() == OPERATION_IMPORT:
        return MovementType.EXCEL_IMPORT
    return MovementType.EXCEL_UPDATE


def record_bulk_change(
    *,
    product,
    previous_stock,
    new_stock,
    operation: str,
    user=None,
    batch_label: str = "",
    variant=None,
) -> Optional[StockMovement]:
    """Ledger entry for one already-applied bulk row (no-op when unchanged)."""
    return record_stock_change(
        product=product,
        variant=variant,
        previous_stock=previous_stock,
        new_stock=new_stock,
        movement_type=movement_type_for_operation(operation),
        reason=f"Bulk {operation}: {batch_label}".strip(),
        performed_by=user,
        reference_type=ReferenceType.EXCEL,
        document_number=batch_label,
    )


@transaction.atomic
def apply_bulk_stock_rows(rows, *, operation: str, user=None, batch_label: str = "") -> BulkUpdateResult:
    rows = list(rows or [])
    if not rows:
        raise InvalidStockValueError("At least one row is required")

    targets = {holder_key(r.product_id, r.variant_id): r for r in rows}
    holders = {
        key: lock_stock_holder(targets[key].product_id, targets[key].variant_id)
        for key in sorted(targets)
    }

    movements = []
    unchanged = 0

    for index, row in enumerate(rows, start=1):
        holder = holders[holder_key(row.product_id, row.variant_id)]
        current = int(holder.stock_quantity or 0)

        if row.previous_stock is not None and int(row.previous_stock) != current:
            raise StockConflictError(
                f"Row {index}: {holder} stock is {current}, file expected {row.previous_stock}"
            )

        target = to_stock_level(row.new_stock, f"row {index} new_stock")
        if target == current:
            unchanged += 1
            continue

        commit_stock_level(holder, holder.stock_version, target)

        product = holder.product if row.variant_id is not None else holder
        variant = holder if row.variant_id is not None else None

        movements.append(
            record_bulk_change(
                product=product,
                variant=variant,
                previous_stock=current,
                new_stock=target,
                operation=operation,
                user=user,
                batch_label=batch_label,
            )
        )

    logger.info(
        "Bulk stock update applied",
        extra={"batch_label": batch_label, "changed": len(movements), "unchanged": unchanged},
    )
    return BulkUpdateResult(movements=tuple(movements), unchanged=unchanged)
