# products/admin.py
"""
=====================================================
PATH: products/admin.py
=====================================================

Admin rules (audit-safe stock):

- stock_quantity / stock_version are read-only everywhere; balances change
  only through the ledger services.
- StockMovement rows are view-only (no add / change / delete).
"""

from __future__ import annotations

from django.contrib import admin

from products.models import Product, ProductVariant, StockMovement

LEDGER_READONLY = ("stock_quantity", "stock_version")


# =====================================================
# PRODUCT + VARIANTS
# =====================================================

class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    can_delete = False
    fields = ("size", "sku", "is_active", "stock_quantity", "stock_version")
    readonly_fields = LEDGER_READONLY


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "name",
        "stock_quantity",
        "is_low_stock",
        "is_active",
        "created_at",
    )
    list_filter = ("is_active", "created_at")
    search_fields = ("code", "name")
    ordering = ("-created_at",)
    readonly_fields = LEDGER_READONLY + ("created_at", "updated_at")

    inlines = [ProductVariantInline]

    @admin.display(boolean=True, description="Low stock")
    def is_low_stock(self, obj):
        return obj.is_low_stock


# =====================================================
# STOCK MOVEMENT (VIEW-ONLY LEDGER)
# =====================================================

@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = (
        "movement_date",
        "product",
        "variant",
        "movement_type",
        "quantity",
        "previous_stock",
        "new_stock",
        "reference_type",
        "document_number",
        "performed_by",
        "status",
    )
    list_filter = ("movement_type", "status", "reference_type", "movement_date")
    search_fields = ("product__name", "product__code", "document_number", "notes")
    ordering = ("-movement_date",)
    list_select_related = ("product", "variant", "performed_by")
    date_hierarchy = "movement_date"

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
