# orders/admin.py

"""
ORDERS ADMIN

Status is read-only here: placing / cancelling must go through the order
lifecycle services so stock is reserved and released with the ledger.
"""

from django.contrib import admin

from orders.models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ("product", "variant", "quantity", "created_at")
    readonly_fields = ("created_at",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_no", "customer", "status", "stock_reserved", "created_at")
    list_filter = ("status", "stock_reserved", "created_at")
    search_fields = ("order_no", "customer__email")
    ordering = ("-created_at",)
    readonly_fields = (
        "order_no",
        "status",
        "stock_reserved",
        "created_at",
        "updated_at",
        "approved_at",
        "cancelled_at",
    )

    inlines = [OrderItemInline]
