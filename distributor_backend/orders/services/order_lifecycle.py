"""
ORDER LIFECYCLE

Part 1 (pure rules):
- The ONLY allowed status transitions for Order.
- No database writes, no stock mutation.

Part 2 (orchestration):
- place_order():  pending -> approved, reserves stock for the whole order
- cancel_order(): pending/approved -> cancelled, releases stock if reserved

Both run in one transaction: a failed reservation leaves the order pending
and every stock balance untouched.
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from orders.models import Order
from products.services.exceptions import OrderNotFoundError, StockLedgerError
from products.services.reservations import apply_order_stock

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================


class OrderLifecycleError(StockLedgerError):
    pass


class InvalidOrderTransitionError(OrderLifecycleError):
    pass


# ============================================================
# STATE DEFINITIONS
# ============================================================

TERMINAL_STATES = {
    Order.STATUS_REJECTED,
    Order.STATUS_COMPLETED,
    Order.STATUS_CANCELLED,
}

ALLOWED_TRANSITIONS = {
    Order.STATUS_PENDING: {
        Order.STATUS_APPROVED,
        Order.STATUS_REJECTED,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_APPROVED: {
        Order.STATUS_SHIPPED,
        Order.STATUS_CANCELLED,
    },
    Order.STATUS_SHIPPED: {
        Order.STATUS_COMPLETED,
    },
}


# ============================================================
# DOMAIN RULES
# ============================================================


def can_transition(*, from_status: str, to_status: str) -> bool:
    if from_status in TERMINAL_STATES:
        return False

    return to_status in ALLOWED_TRANSITIONS.get(from_status, set())


def validate_transition(*, order: Order, target_status: str):
    if not can_transition(from_status=order.status, to_status=target_status):
        raise InvalidOrderTransitionError(
            f"Order {order.order_no} cannot transition from "
            f"'{order.status}' to '{target_status}'"
        )


# ============================================================
# ORCHESTRATION
# ============================================================


def _lock_order(order) -> Order:
    order_id = getattr(order, "pk", order)
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise OrderNotFoundError(f"Order {order_id} not found") from exc


@transaction.atomic
def place_order(order, *, user=None) -> Order:
    locked = _lock_order(order)
    validate_transition(order=locked, target_status=Order.STATUS_APPROVED)

    apply_order_stock(locked, is_reservation=True, user=user)

    locked.status = Order.STATUS_APPROVED
    locked.stock_reserved = True
    locked.approved_at = timezone.now()
    locked.save(update_fields=["status", "stock_reserved", "approved_at", "updated_at"])

    logger.info("Order placed", extra={"order_id": str(locked.pk), "order_no": locked.order_no})
    return locked


@transaction.atomic
def cancel_order(order, *, user=None) -> Order:
    locked = _lock_order(order)
    validate_transition(order=locked, target_status=Order.STATUS_CANCELLED)

    if locked.stock_reserved:
        apply_order_stock(locked, is_reservation=False, user=user)

    locked.status = Order.STATUS_CANCELLED
    locked.stock_reserved = False
    locked.cancelled_at = timezone.now()
    locked.save(update_fields=["status", "stock_reserved", "cancelled_at", "updated_at"])

    logger.info("Order cancelled", extra={"order_id": str(locked.pk), "order_no": locked.order_no})
    return locked
