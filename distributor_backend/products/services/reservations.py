# products/services/reservations.py

"""
ORDER STOCK RESERVATION / RELEASE

Purpose:
- Decrement stock when an order is placed (ORDER_RESERVED).
- Give it back when the order is cancelled (ORDER_CANCELLED_RETURN).

Rules:
- A reservation larger than the available stock is REJECTED (never clamped).
- Order-level operations are all-or-nothing: the whole order's demand is
  checked per stock holder before any line is applied.
- Holders are locked in a deterministic order to avoid deadlocks between
  concurrent orders sharing products.
"""

from __future__ import annotations

import logging
from collections import OrderedDict

from django.db import transaction

from products.movement_rules import MovementType, ReferenceType

from .exceptions import InsufficientStockError, InvalidStockValueError
from .ledger import apply_stock_change, holder_key, lock_stock_holder, to_quantity

logger = logging.getLogger(__name__)


def _order_label(order) -> str:
    return getattr(order, "order_no", None) or str(getattr(order, "pk", order))


@transaction.atomic
def reserve_stock(*, product, quantity, order, user=None, variant=None):
    qty = to_quantity(quantity)
    holder = lock_stock_holder(product, variant)

    current = int(holder.stock_quantity or 0)
    if qty > current:
        raise InsufficientStockError(
            f"Insufficient stock for {holder}. Available: {current}, Requested: {qty}",
            available=current,
            requested=qty,
        )

    return apply_stock_change(
        holder,
        new_stock=current - qty,
        movement_type=MovementType.ORDER_RESERVED,
        performed_by=user,
        reason=f"Reserved for order {_order_label(order)}",
        reference_type=ReferenceType.ORDER,
        reference_id=getattr(order, "pk", order),
    )


@transaction.atomic
def release_stock(*, product, quantity, order, user=None, variant=None):
    qty = to_quantity(quantity)
    holder = lock_stock_holder(product, variant)

    current = int(holder.stock_quantity or 0)

    return apply_stock_change(
        holder,
        new_stock=current + qty,
        movement_type=MovementType.ORDER_CANCELLED_RETURN,
        performed_by=user,
        reason=f"Returned from cancelled order {_order_label(order)}",
        reference_type=ReferenceType.ORDER,
        reference_id=getattr(order, "pk", order),
    )


def _aggregate_demand(items) -> "OrderedDict[tuple, dict]":
    demand: "OrderedDict[tuple, dict]" = OrderedDict()
    for item in items:
        key = holder_key(item.product_id, item.variant_id)
        entry = demand.setdefault(
            key,
            {"product_id": item.product_id, "variant_id": item.variant_id, "quantity": 0},
        )
        entry["quantity"] += to_quantity(item.quantity, "item quantity")
    return demand


@transaction.atomic
def apply_order_stock(order, *, is_reservation: bool, user=None) -> list:
    """
    Reserve (or release) stock for every line item of an order.

    Pre-flight:
    1) aggregate demand per stock holder
    2) lock every holder (sorted by identity)
    3) verify the whole order fits before mutating anything
    Then one movement per line item, in item order.
    """
    items = list(order.items.all().order_by("created_at"))
    if not items:
        raise InvalidStockValueError(f"Order {_order_label(order)} has no line items")

    demand = _aggregate_demand(items)

    holders = {}
    for key in sorted(demand):
        entry = demand[key]
        holders[key] = lock_stock_holder(entry["product_id"], entry["variant_id"])

    if is_reservation:
        shortages = []
        for key, entry in demand.items():
            available = int(holders[key].stock_quantity or 0)
            if entry["quantity"] > available:
                shortages.append(f"{holders[key]} (available {available}, requested {entry['quantity']})")

        if shortages:
            raise InsufficientStockError(
                f"Insufficient stock for order {_order_label(order)}: " + "; ".join(shortages)
            )

    if is_reservation:
        movement_type = MovementType.ORDER_RESERVED
        reason = f"Reserved for order {_order_label(order)}"
    else:
        movement_type = MovementType.ORDER_CANCELLED_RETURN
        reason = f"Returned from cancelled order {_order_label(order)}"

    movements = []
    for item in items:
        holder = holders[holder_key(item.product_id, item.variant_id)]
        current = int(holder.stock_quantity or 0)
        qty = int(item.quantity)
        target = current - qty if is_reservation else current + qty

        movements.append(
            apply_stock_change(
                holder,
                new_stock=target,
                movement_type=movement_type,
                performed_by=user,
                reason=reason,
                reference_type=ReferenceType.ORDER,
                reference_id=order.pk,
            )
        )

    logger.info(
        "Order stock applied",
        extra={
            "order_id": str(order.pk),
            "is_reservation": is_reservation,
            "lines": len(movements),
        },
    )
    return movements
