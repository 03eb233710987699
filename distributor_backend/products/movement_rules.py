# products/movement_rules.py

"""
STOCK MOVEMENT CLASSIFICATION

Single source of truth for what a movement type MEANS:
- sign: +1 increases stock, -1 decreases stock, 0 is informational,
  None follows the actual change (new - previous) of the row
- category: IN / OUT / INFO for reporting
- label: human display name
- affects_cost: whether the row carries a meaningful purchase cost

RULES:
- No database writes, no model imports.
- Every direction decision in the project (writer validation, model clean,
  summaries, daily aggregation) reads from MOVEMENT_RULES.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from django.db import models
from django.db.models import F, Q


class MovementType(models.TextChoices):
    INITIAL_STOCK = "INITIAL_STOCK", "Initial Stock"
    STOCK_IN = "STOCK_IN", "Stock In"
    STOCK_OUT = "STOCK_OUT", "Stock Out"
    ADJUSTMENT_IN = "ADJUSTMENT_IN", "Adjustment In"
    ADJUSTMENT_OUT = "ADJUSTMENT_OUT", "Adjustment Out"
    ORDER_RESERVED = "ORDER_RESERVED", "Order Reservation"
    ORDER_CANCELLED_RETURN = "ORDER_CANCELLED_RETURN", "Cancelled Order Return"
    EXCEL_IMPORT = "EXCEL_IMPORT", "Excel Import"
    EXCEL_UPDATE = "EXCEL_UPDATE", "Excel Update"
    STOCK_COUNT = "STOCK_COUNT", "Stock Count"


class ReferenceType(models.TextChoices):
    ORDER = "ORDER", "Order"
    PRODUCT_INITIAL = "PRODUCT_INITIAL", "Product Initial Stock"
    VARIANT_INITIAL = "VARIANT_INITIAL", "Variant Initial Stock"
    EXCEL = "EXCEL", "Excel Batch"
    STOCK_COUNT = "STOCK_COUNT", "Stock Count"
    MANUAL = "MANUAL", "Manual Entry"


CATEGORY_IN = "IN"
CATEGORY_OUT = "OUT"
CATEGORY_INFO = "INFO"

INCREASE = 1
DECREASE = -1
NEUTRAL = 0
FOLLOWS_CHANGE = None


@dataclass(frozen=True)
class MovementRule:
    sign: Optional[int]
    category: Optional[str]
    label: str
    affects_cost: bool = False


MOVEMENT_RULES: dict[str, MovementRule] = {
    MovementType.INITIAL_STOCK: MovementRule(INCREASE, CATEGORY_IN, MovementType.INITIAL_STOCK.label, True),
    MovementType.STOCK_IN: MovementRule(INCREASE, CATEGORY_IN, MovementType.STOCK_IN.label, True),
    MovementType.STOCK_OUT: MovementRule(DECREASE, CATEGORY_OUT, MovementType.STOCK_OUT.label),
    MovementType.ADJUSTMENT_IN: MovementRule(INCREASE, CATEGORY_IN, MovementType.ADJUSTMENT_IN.label),
    MovementType.ADJUSTMENT_OUT: MovementRule(DECREASE, CATEGORY_OUT, MovementType.ADJUSTMENT_OUT.label),
    MovementType.ORDER_RESERVED: MovementRule(DECREASE, CATEGORY_OUT, MovementType.ORDER_RESERVED.label),
    MovementType.ORDER_CANCELLED_RETURN: MovementRule(
        INCREASE, CATEGORY_IN, MovementType.ORDER_CANCELLED_RETURN.label
    ),
    MovementType.EXCEL_IMPORT: MovementRule(INCREASE, CATEGORY_IN, MovementType.EXCEL_IMPORT.label, True),
    # category resolved per row from the sign of the change
    MovementType.EXCEL_UPDATE: MovementRule(FOLLOWS_CHANGE, None, MovementType.EXCEL_UPDATE.label, True),
    MovementType.STOCK_COUNT: MovementRule(NEUTRAL, CATEGORY_INFO, MovementType.STOCK_COUNT.label),
}


class UnknownMovementTypeError(ValueError):
    pass


class MovementClassificationError(ValueError):
    """A (type, quantity, previous, new) tuple contradicts the rule table."""


def get_rule(movement_type) -> MovementRule:
    try:
        return MOVEMENT_RULES[MovementType(movement_type)]
    except ValueError as exc:
        raise UnknownMovementTypeError(f"Unknown movement type: {movement_type!r}") from exc


def _change_sign(previous_stock: int, new_stock: int) -> int:
    return (new_stock > previous_stock) - (new_stock < previous_stock)


def signed_delta(movement_type, quantity: int, *, previous_stock=None, new_stock=None) -> int:
    """
    Signed effect of a movement on the aggregate stock.

    EXCEL_UPDATE has no fixed direction, so previous/new are required for it.
    """
    rule = get_rule(movement_type)
    sign = rule.sign
    if sign is FOLLOWS_CHANGE:
        if previous_stock is None or new_stock is None:
            raise MovementClassificationError(
                f"{movement_type} needs previous_stock and new_stock to resolve its direction"
            )
        sign = _change_sign(int(previous_stock), int(new_stock))
    return sign * int(quantity)


def category_for(movement_type, *, previous_stock=None, new_stock=None) -> str:
    rule = get_rule(movement_type)
    if rule.category is not None:
        return rule.category

    delta = signed_delta(movement_type, 1, previous_stock=previous_stock, new_stock=new_stock)
    if delta > 0:
        return CATEGORY_IN
    if delta < 0:
        return CATEGORY_OUT
    return CATEGORY_INFO


def check_movement(movement_type, quantity: int, previous_stock: int, new_stock: int) -> None:
    """
    Verify new_stock == previous_stock + signed_delta(type, quantity).
    """
    if quantity is None or int(quantity) < 0:
        raise MovementClassificationError("quantity must be a non-negative integer")

    rule = get_rule(movement_type)
    if rule.sign == NEUTRAL:
        if int(previous_stock) != int(new_stock):
            raise MovementClassificationError(
                f"{movement_type} is informational and cannot change stock "
                f"({previous_stock} -> {new_stock})"
            )
        if int(quantity) != 0:
            raise MovementClassificationError(f"{movement_type} rows carry quantity 0")
        return

    expected = int(previous_stock) + signed_delta(
        movement_type, quantity, previous_stock=previous_stock, new_stock=new_stock
    )
    if expected != int(new_stock):
        raise MovementClassificationError(
            f"{movement_type} of {quantity} cannot move stock {previous_stock} -> {new_stock}"
        )


def types_with_sign(sign: Optional[int]) -> list[str]:
    return [code for code, rule in MOVEMENT_RULES.items() if rule.sign == sign]


def cost_affecting_types() -> list[str]:
    """Types whose unit cost feeds the average cost of a holder."""
    return [code for code, rule in MOVEMENT_RULES.items() if rule.affects_cost]


def stock_in_filter(prefix: str = "") -> Q:
    """ORM filter selecting rows classified as stock-in."""
    fixed = Q(**{f"{prefix}movement_type__in": types_with_sign(INCREASE)})
    follows = Q(
        **{
            f"{prefix}movement_type__in": types_with_sign(FOLLOWS_CHANGE),
            f"{prefix}new_stock__gt": F(f"{prefix}previous_stock"),
        }
    )
    return fixed | follows


def stock_out_filter(prefix: str = "") -> Q:
    """ORM filter selecting rows classified as stock-out."""
    fixed = Q(**{f"{prefix}movement_type__in": types_with_sign(DECREASE)})
    follows = Q(
        **{
            f"{prefix}movement_type__in": types_with_sign(FOLLOWS_CHANGE),
            f"{prefix}new_stock__lt": F(f"{prefix}previous_stock"),
        }
    )
    return fixed | follows
