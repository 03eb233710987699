# orders/models/order_item.py

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from products.models import Product, ProductVariant


class OrderItem(models.Model):
    """
    Line item of an Order. Reserves stock from the variant when one is set,
    otherwise from the product.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        Product,
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    variant = models.ForeignKey(
        ProductVariant,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="order_items",
    )

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["order"]),
            models.Index(fields=["product"]),
        ]

    def clean(self):
        if self.quantity is None or int(self.quantity) <= 0:
            raise ValidationError("quantity must be >= 1")

        if self.variant_id and self.product_id:
            owner_id = (
                ProductVariant.objects.filter(id=self.variant_id)
                .values_list("product_id", flat=True)
                .first()
            )
            if owner_id is not None and owner_id != self.product_id:
                raise ValidationError("Variant does not belong to product")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self):
        target = self.variant or self.product
        return f"{target} x{self.quantity}"
