# products/services/ledger.py

"""
STOCK LEDGER WRITER

PURPOSE:
- Record every change of a product / variant stock balance as ONE immutable
  StockMovement row.
- Keep the aggregate (stock_quantity) and the ledger in the SAME transaction.

RULES:
- record_stock_change() never decides the new balance; the caller does.
- It refuses to run outside transaction.atomic.
- Equal previous/new stock is a no-op (returns None, writes nothing).
- Direction is validated against products.movement_rules, never re-derived.
- Store failures propagate (LedgerPersistenceError) so the caller's
  transaction rolls back the aggregate write too.

GUARANTEES:
- Aggregate writes are conditional on stock_version (lost-update detection).
- A failed call leaves ledger and aggregate untouched.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from django.apps import apps
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError, transaction
from django.db.models import F

from products.models import Product, ProductVariant, StockMovement
from products.movement_rules import (
    MovementClassificationError,
    MovementType,
    ReferenceType,
    UnknownMovementTypeError,
    check_movement,
    signed_delta,
)

from .exceptions import (
    InsufficientStockError,
    InvalidStockValueError,
    LedgerPersistenceError,
    MovementDirectionError,
    ProductNotFoundError,
    ReferenceNotFoundError,
    StockConflictError,
)

logger = logging.getLogger(__name__)

StockHolderInstance = Union[Product, ProductVariant]

# reference types that point at a concrete row
REFERENCE_MODELS = {
    ReferenceType.ORDER: "orders.Order",
    ReferenceType.PRODUCT_INITIAL: "products.Product",
    ReferenceType.VARIANT_INITIAL: "products.ProductVariant",
}

MANUAL_MOVEMENT_TYPES = (
    MovementType.STOCK_IN,
    MovementType.STOCK_OUT,
    MovementType.ADJUSTMENT_IN,
    MovementType.ADJUSTMENT_OUT,
)


# ============================================================
# HELPERS
# ============================================================

def to_stock_level(value, field: str = "stock") -> int:
    """Missing values normalize to 0; negatives are rejected."""
    if value is None or value == "":
        return 0

    if isinstance(value, bool):
        raise InvalidStockValueError(f"{field} must be an integer")

    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidStockValueError(f"{field} must be an integer")

    if number < 0:
        raise InvalidStockValueError(f"{field} cannot be negative")

    return number


def to_quantity(value, field: str = "quantity") -> int:
    """Strictly positive integer quantity."""
    if value is None or value == "":
        raise InvalidStockValueError(f"{field} is required")

    number = to_stock_level(value, field)
    if number == 0:
        raise InvalidStockValueError(f"{field} must be greater than zero")
    return number


def _require_atomic(operation: str) -> None:
    if not transaction.get_connection().in_atomic_block:
        raise transaction.TransactionManagementError(
            f"{operation} must run inside transaction.atomic together with "
            f"the aggregate stock update"
        )


def _holder_parts(holder: StockHolderInstance):
    if isinstance(holder, ProductVariant):
        return holder.product, holder
    return holder, None


def holder_key(product_id, variant_id=None) -> tuple:
    """Stable identity of a stock holder (used for deterministic lock order)."""
    if variant_id is not None:
        return ("variant", str(variant_id))
    return ("product", str(product_id))


def validate_reference(reference_type, reference_id) -> None:
    if reference_type in (None, ""):
        if reference_id is not None:
            raise InvalidStockValueError("reference_id requires a reference_type")
        return

    if reference_type not in ReferenceType.values:
        raise InvalidStockValueError(f"Unknown reference type: {reference_type!r}")

    model_label = REFERENCE_MODELS.get(reference_type)
    if model_label is None:
        if reference_id is not None:
            raise InvalidStockValueError(
                f"{reference_type} references do not carry an id"
            )
        return

    if reference_id is None:
        raise InvalidStockValueError(f"{reference_type} references require an id")

    model = apps.get_model(model_label)
    if not model.objects.filter(pk=reference_id).exists():
        raise ReferenceNotFoundError(
            f"{reference_type} reference {reference_id} does not exist"
        )


def _check_direction(movement_type, quantity, previous_stock, new_stock) -> None:
    try:
        check_movement(movement_type, quantity, previous_stock, new_stock)
    except (UnknownMovementTypeError, MovementClassificationError) as exc:
        raise MovementDirectionError(str(exc)) from exc


# ============================================================
# AGGREGATE (STOCK HOLDER) ACCESS
# ============================================================

def lock_stock_holder(product, variant=None) -> StockHolderInstance:
    """
    Re-read the stock holder under select_for_update().

    product / variant may be instances or primary keys.
    """
    product_id = getattr(product, "pk", product)
    variant_id = getattr(variant, "pk", variant)

    if variant_id is not None:
        try:
            holder = ProductVariant.objects.select_for_update().get(pk=variant_id)
        except (ProductVariant.DoesNotExist, DjangoValidationError, ValueError) as exc:
            raise ProductNotFoundError(f"Variant {variant_id} not found") from exc

        if product_id is not None and str(holder.product_id) != str(product_id):
            raise ProductNotFoundError(
                f"Variant {variant_id} does not belong to product {product_id}"
            )
        return holder

    try:
        return Product.objects.select_for_update().get(pk=product_id)
    except (Product.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise ProductNotFoundError(f"Product {product_id} not found") from exc


def commit_stock_level(holder: StockHolderInstance, expected_version: int, new_stock) -> None:
    """
    Conditional aggregate write: UPDATE ... WHERE stock_version = expected.

    Raises StockConflictError when the row moved on since it was read.
    """
    _require_atomic("commit_stock_level")
    value = to_stock_level(new_stock, "new_stock")

    updated = type(holder).objects.filter(
        pk=holder.pk,
        stock_version=expected_version,
    ).update(
        stock_quantity=value,
        stock_version=F("stock_version") + 1,
    )

    if updated != 1:
        raise StockConflictError(
            f"Stock for {holder} changed concurrently (expected version "
            f"{expected_version}); reload and retry"
        )

    holder.sync_stock(stock_quantity=value, stock_version=expected_version + 1)


# ============================================================
# WRITER
# ============================================================

def record_stock_change(
    *,
    product: Product,
    previous_stock,
    new_stock,
    movement_type: str,
    reason: str = "",
    performed_by=None,
    variant: Optional[ProductVariant] = None,
    reference_type: Optional[str] = None,
    reference_id=None,
    document_number: str = "",
    unit_cost=None,
    batch_number: str = "",
    expiry_date=None,
) -> Optional[StockMovement]:
    """
    Append one movement for a stock change the caller has already decided on.
    """
    _require_atomic("record_stock_change")

    previous = to_stock_level(previous_stock, "previous_stock")
    new = to_stock_level(new_stock, "new_stock")

    if previous == new:
        return None

    quantity = abs(new - previous)

    _check_direction(movement_type, quantity, previous, new)

    if variant is not None and variant.product_id != product.pk:
        raise InvalidStockValueError("Variant does not belong to product")

    validate_reference(reference_type, reference_id)

    try:
        movement = StockMovement.objects.create(
            product=product,
            variant=variant,
            movement_type=movement_type,
            quantity=quantity,
            previous_stock=previous,
            new_stock=new,
            unit_cost=unit_cost,
            batch_number=batch_number or "",
            expiry_date=expiry_date,
            reference_type=reference_type or None,
            reference_id=reference_id,
            document_number=document_number or "",
            notes=reason or "",
            performed_by=performed_by,
        )
    except DatabaseError as exc:
        raise LedgerPersistenceError(f"Could not record stock movement: {exc}") from exc

    logger.info(
        "Stock movement recorded",
        extra={
            "movement_id": str(movement.id),
            "product_id": str(product.pk),
            "variant_id": str(variant.pk) if variant is not None else None,
            "movement_type": movement_type,
            "previous_stock": previous,
            "new_stock": new,
        },
    )
    return movement


def apply_stock_change(
    holder: StockHolderInstance,
    *,
    new_stock,
    movement_type: str,
    performed_by=None,
    reason: str = "",
    reference_type: Optional[str] = None,
    reference_id=None,
    document_number: str = "",
    unit_cost=None,
    batch_number: str = "",
    expiry_date=None,
) -> Optional[StockMovement]:
    """
    Commit a locked holder's new balance and record the paired movement.

    The holder must have been obtained through lock_stock_holder() in the
    current transaction.
    """
    _require_atomic("apply_stock_change")

    previous = int(holder.stock_quantity or 0)
    new = to_stock_level(new_stock, "new_stock")
    if previous == new:
        return None

    _check_direction(movement_type, abs(new - previous), previous, new)
    validate_reference(reference_type, reference_id)

    commit_stock_level(holder, holder.stock_version, new)

    product, variant = _holder_parts(holder)
    return record_stock_change(
        product=product,
        variant=variant,
        previous_stock=previous,
        new_stock=new,
        movement_type=movement_type,
        reason=reason,
        performed_by=performed_by,
        reference_type=reference_type,
        reference_id=reference_id,
        document_number=document_number,
        unit_cost=unit_cost,
        batch_number=batch_number,
        expiry_date=expiry_date,
    )


def record_count_snapshot(
    holder: StockHolderInstance,
    *,
    counted,
    performed_by=None,
    document_number: str = "",
    notes: str = "",
) -> StockMovement:
    """
    Informational STOCK_COUNT row: previous == new == counted, quantity 0.
    """
    _require_atomic("record_count_snapshot")

    counted = to_stock_level(counted, "counted_quantity")
    current = int(holder.stock_quantity or 0)
    if counted != current:
        raise MovementDirectionError(
            f"STOCK_COUNT cannot record a difference (system {current}, counted {counted})"
        )

    product, variant = _holder_parts(holder)

    try:
        movement = StockMovement.objects.create(
            product=product,
            variant=variant,
            movement_type=MovementType.STOCK_COUNT,
            quantity=0,
            previous_stock=counted,
            new_stock=counted,
            reference_type=ReferenceType.STOCK_COUNT,
            document_number=document_number or "",
            notes=notes or "",
            performed_by=performed_by,
        )
    except DatabaseError as exc:
        raise LedgerPersistenceError(f"Could not record stock count: {exc}") from exc

    logger.info(
        "Stock count matched system stock",
        extra={"movement_id": str(movement.id), "product_id": str(product.pk), "stock": counted},
    )
    return movement


# ============================================================
# ORIGINS: INITIAL STOCK + MANUAL ENTRIES
# ============================================================

@transaction.atomic
def assign_initial_stock(
    *,
    product,
    initial_stock,
    user=None,
    variant=None,
    unit_cost=None,
    batch_number: str = "",
    expiry_date=None,
    document_number: str = "",
) -> Optional[StockMovement]:
    """
    Opening balance of a freshly created product or variant.

    The holder must be untouched (zero stock, no movement history).
    """
    value = to_stock_level(initial_stock, "initial_stock")

    holder = lock_stock_holder(product, variant)
    product_obj, variant_obj = _holder_parts(holder)

    history = StockMovement.objects.filter(product=product_obj)
    history = history.filter(variant=variant_obj) if variant_obj else history.filter(variant__isnull=True)

    if int(holder.stock_quantity or 0) != 0 or history.exists():
        raise InvalidStockValueError(f"Initial stock for {holder} has already been set")

    if variant_obj is not None:
        reference_type, reference_id = ReferenceType.VARIANT_INITIAL, variant_obj.pk
    else:
        reference_type, reference_id = ReferenceType.PRODUCT_INITIAL, product_obj.pk

    return apply_stock_change(
        holder,
        new_stock=value,
        movement_type=MovementType.INITIAL_STOCK,
        performed_by=user,
        reason="Initial stock",
        reference_type=reference_type,
        reference_id=reference_id,
        document_number=document_number,
        unit_cost=unit_cost,
        batch_number=batch_number,
        expiry_date=expiry_date,
    )


@transaction.atomic
def record_manual_movement(
    *,
    product,
    movement_type: str,
    quantity,
    user=None,
    variant=None,
    unit_cost=None,
    batch_number: str = "",
    expiry_date=None,
    document_number: str = "",
    notes: str = "",
) -> StockMovement:
    """Manual receipt / issue / adjustment entered by warehouse staff."""
    if movement_type not in MANUAL_MOVEMENT_TYPES:
        raise InvalidStockValueError(
            f"{movement_type} cannot be recorded manually; allowed: "
            f"{', '.join(MANUAL_MOVEMENT_TYPES)}"
        )

    qty = to_quantity(quantity)

    holder = lock_stock_holder(product, variant)
    current = int(holder.stock_quantity or 0)
    target = current + signed_delta(movement_type, qty)

    if target < 0:
        raise InsufficientStockError(
            f"Insufficient stock for {holder}. Available: {current}, Requested: {qty}",
            available=current,
            requested=qty,
        )

    return apply_stock_change(
        holder,
        new_stock=target,
        movement_type=movement_type,
        performed_by=user,
        reason=notes,
        reference_type=ReferenceType.MANUAL,
        document_number=document_number,
        unit_cost=unit_cost,
        batch_number=batch_number,
        expiry_date=expiry_date,
    )


# ============================================================
# RETENTION
# ============================================================

def archivable_movements(*, before, product=None):
    qs = StockMovement.objects.filter(
        status=StockMovement.Status.ACTIVE,
        movement_date__lt=before,
    )
    if product is not None:
        qs = qs.filter(product_id=getattr(product, "pk", product))
    return qs


def archive_movements(*, before, product=None) -> int:
    """
    Soft-delete (status only) active movements dated before `before`.

    Quantities are never touched.
    """
    archived = archivable_movements(before=before, product=product).update(status=StockMovement.Status.DELETED)

    logger.info(
        "Archived stock movements",
        extra={"archived": archived, "before": before.isoformat()},
    )
    return archived
