# products/models/stock_holder.py

"""
STOCK HOLDER (ABSTRACT)

Shared aggregate-stock columns for Product and ProductVariant.

RULES:
- stock_quantity is the "current balance" projection of the movement ledger.
- It is written ONLY by the ledger services (conditional queryset UPDATE),
  never through Model.save().
- stock_version is bumped on every aggregate write (optimistic concurrency).
- Model.save() on a persisted row never writes the stock columns, so a stale
  in-memory instance cannot overwrite a balance committed by the ledger.
"""

from __future__ import annotations

from django.core.exceptions import ValidationError
from django.db import models

LEDGER_MANAGED_FIELDS = ("stock_quantity", "stock_version")


class StockHolder(models.Model):
    stock_quantity = models.PositiveIntegerField(
        default=0,
        help_text="Current stock balance (ledger-managed only)",
    )
    stock_version = models.PositiveIntegerField(
        default=0,
        help_text="Bumped on every stock write (lost-update detection)",
    )

    class Meta:
        abstract = True

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_stock_quantity = instance.__dict__.get("stock_quantity")
        return instance

    def refresh_from_db(self, *args, **kwargs):
        super().refresh_from_db(*args, **kwargs)
        self._loaded_stock_quantity = self.__dict__.get("stock_quantity")

    def save(self, *args, **kwargs):
        if self._state.adding:
            if int(self.stock_quantity or 0) != 0:
                raise ValidationError(
                    "New rows start with zero stock. Use assign_initial_stock() "
                    "to record the opening balance."
                )
            super().save(*args, **kwargs)
            self._loaded_stock_quantity = self.stock_quantity
            return

        loaded = getattr(self, "_loaded_stock_quantity", None)
        if loaded is not None and loaded != self.stock_quantity:
            raise ValidationError(
                "stock_quantity is ledger-managed. Use the stock services "
                "(reservation, stock count, bulk update, manual movement)."
            )

        update_fields = kwargs.get("update_fields")
        if update_fields is None:
            update_fields = [
                f.name
                for f in self._meta.concrete_fields
                if not f.primary_key
            ]
        kwargs["update_fields"] = [
            name for name in update_fields if name not in LEDGER_MANAGED_FIELDS
        ]

        super().save(*args, **kwargs)

    def sync_stock(self, *, stock_quantity: int, stock_version: int) -> None:
        """Mirror a committed aggregate write onto this in-memory instance."""
        self.stock_quantity = stock_quantity
        self.stock_version = stock_version
        self._loaded_stock_quantity = stock_quantity
