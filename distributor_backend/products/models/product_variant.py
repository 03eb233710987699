# products/models/product_variant.py

import re
import uuid

from django.db import models

from .product import Product
from .stock_holder import StockHolder


class ProductVariant(StockHolder):
    """
    A sellable size/variant of a product with its own stock balance.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="variants",
    )

    size = models.CharField(max_length=50)
    sku = models.CharField(max_length=100, unique=True, db_index=True)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product", "size"]
        indexes = [
            models.Index(fields=["product", "size"]),
        ]

    def __str__(self):
        return self.display_name

    @property
    def display_name(self) -> str:
        product_name = getattr(self.product, "name", "Product")
        return f"{product_name} - {self.size}"

    @staticmethod
    def generate_sku(product_code: str, size: str) -> str:
        """Format: {product_code}-{size} (whitespace collapsed to dashes)."""
        if not product_code or not size:
            raise ValueError("product_code and size are required to generate a SKU")
        clean_size = re.sub(r"\s+", "-", size.strip())
        return f"{product_code.strip()}-{clean_size}"

