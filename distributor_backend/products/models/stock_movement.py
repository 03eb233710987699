# products/models/stock_movement.py

"""
STOCK MOVEMENT LEDGER

Immutable audit row for every change of a product / variant stock balance.

GUARANTEES:
- Append-only: created ONCE, never edited through the model
- new_stock == previous_stock + signed_delta(movement_type, quantity)
- quantity is non-negative; direction comes from the movement type
- Only `status` may change afterwards (archival), via archive_movements()
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from products.movement_rules import (
    MovementClassificationError,
    MovementType,
    ReferenceType,
    category_for,
    check_movement,
    get_rule,
)

from .product import Product
from .product_variant import ProductVariant


class StockMovement(models.Model):
    MovementType = MovementType
    ReferenceType = ReferenceType

    class Status(models.TextChoices):
        ACTIVE = "ACTIVE", "Active"
        DELETED = "DELETED", "Deleted"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="stock_movements"
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    movement_type = models.CharField(max_length=30, choices=MovementType.choices)
    quantity = models.PositiveIntegerField()

    previous_stock = models.IntegerField()
    new_stock = models.IntegerField()

    unit_cost = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        default=None,
    )
    batch_number = models.CharField(max_length=100, blank=True, default="")
    expiry_date = models.DateField(null=True, blank=True)

    reference_type = models.CharField(
        max_length=30,
        choices=ReferenceType.choices,
        null=True,
        blank=True,
    )
    reference_id = models.UUIDField(null=True, blank=True)

    document_number = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    performed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="stock_movements",
    )

    movement_date = models.DateTimeField(default=timezone.now, db_index=True)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.ACTIVE,
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-movement_date", "-created_at"]
        indexes = [
            models.Index(fields=["movement_type"]),
            models.Index(fields=["product", "movement_date"]),
            models.Index(fields=["variant", "movement_date"]),
            models.Index(fields=["reference_type", "reference_id"]),
            models.Index(fields=["status", "movement_date"]),
        ]

    def clean(self):
        if self.variant_id and self.product_id:
            owner_id = (
                ProductVariant.objects.filter(id=self.variant_id)
                .values_list("product_id", flat=True)
                .first()
            )
            if owner_id is not None and owner_id != self.product_id:
                raise ValidationError("Variant does not belong to product")

        try:
            check_movement(
                self.movement_type,
                self.quantity,
                self.previous_stock,
                self.new_stock,
            )
        except MovementClassificationError as exc:
            raise ValidationError(str(exc)) from exc

        if self.reference_id and not self.reference_type:
            raise ValidationError("reference_id requires a reference_type")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("StockMovement records are immutable")

        self.full_clean()
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError(
            "StockMovement records are immutable and cannot be deleted"
        )

    @property
    def total_cost(self) -> Decimal:
        unit_cost = self.unit_cost if self.unit_cost is not None else Decimal("0.00")
        return unit_cost * Decimal(int(self.quantity or 0))

    @property
    def movement_label(self) -> str:
        return get_rule(self.movement_type).label

    @property
    def category(self) -> str:
        return category_for(
            self.movement_type,
            previous_stock=self.previous_stock,
            new_stock=self.new_stock,
        )

    def __str__(self):
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} | {self.movement_type} | {self.quantity}"
