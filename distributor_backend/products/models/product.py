# products/models/product.py

import uuid

from django.db import models

from .stock_holder import StockHolder


class Product(StockHolder):
    """
    Represents a catalog product.

    STOCK MODEL (IMPORTANT):
    - stock_quantity is the aggregate balance for products sold without variants.
    - Variants carry their own aggregate (see ProductVariant).
    - Both are projections of StockMovement and change only through the ledger.

    Catalog CRUD lives outside this backend; only the fields the ledger reads
    are modelled here.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    code = models.CharField(max_length=64, unique=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)

    low_stock_threshold = models.PositiveIntegerField(default=10)

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["code"]),
            models.Index(fields=["name"]),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"

    @property
    def is_low_stock(self) -> bool:
        return int(self.stock_quantity or 0) <= int(self.low_stock_threshold or 0)
