# products/serializers/stock_movement.py
"""
======================================================
PATH: products/serializers/stock_movement.py
======================================================
STOCK MOVEMENT SERIALIZERS

Read:
- StockMovementSerializer: outbound movement shape (read-only; rows are
  immutable).

Commands (input validation only, services do the work):
- StockCountSerializer
- ManualMovementSerializer
- BulkStockUpdateSerializer
- InitialStockSerializer
"""

from __future__ import annotations

from rest_framework import serializers

from products.models import StockMovement
from products.movement_rules import MovementType
from products.services.ledger import MANUAL_MOVEMENT_TYPES


class StockMovementSerializer(serializers.ModelSerializer):
    product = serializers.SerializerMethodField()
    variant = serializers.SerializerMethodField()
    performed_by = serializers.SerializerMethodField()

    movement_type_display = serializers.CharField(source="movement_label", read_only=True)
    status_display = serializers.CharField(source="get_status_display", read_only=True)
    category = serializers.CharField(read_only=True)

    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = StockMovement
        fields = [
            "id",
            "product",
            "variant",
            "movement_type",
            "movement_type_display",
            "category",
            "quantity",
            "previous_stock",
            "new_stock",
            "unit_cost",
            "total_cost",
            "batch_number",
            "expiry_date",
            "reference_type",
            "reference_id",
            "document_number",
            "notes",
            "performed_by",
            "movement_date",
            "created_at",
            "status",
            "status_display",
        ]
        read_only_fields = fields

    def get_product(self, obj):
        return {
            "id": str(obj.product_id),
            "name": obj.product.name,
            "code": obj.product.code,
        }

    def get_variant(self, obj):
        if not obj.variant_id:
            return None
        return {
            "id": str(obj.variant_id),
            "size": obj.variant.size,
            "sku": obj.variant.sku,
        }

    def get_performed_by(self, obj):
        user = obj.performed_by
        if user is None:
            return None
        return {
            "id": str(user.pk),
            "username": getattr(user, "username", ""),
            "name": getattr(user, "display_name", "") or str(user),
        }


class StockCountSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    counted_quantity = serializers.IntegerField(min_value=0)
    document_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class ManualMovementSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    movement_type = serializers.ChoiceField(
        choices=[(str(code), MovementType(code).label) for code in MANUAL_MOVEMENT_TYPES]
    )
    quantity = serializers.IntegerField(min_value=1)
    unit_cost = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=0,
    )
    batch_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    document_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class BulkRowSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True, default=None)
    new_stock = serializers.IntegerField(min_value=0)
    previous_stock = serializers.IntegerField(required=False, allow_null=True, default=None, min_value=0)


class BulkStockUpdateSerializer(serializers.Serializer):
    operation = serializers.ChoiceField(choices=["import", "update"], default="update")
    batch_label = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    rows = BulkRowSerializer(many=True, allow_empty=False)


class InitialStockSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    variant_id = serializers.UUIDField(required=False, allow_null=True)
    initial_stock = serializers.IntegerField(min_value=0)
    unit_cost = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        required=False,
        allow_null=True,
        min_value=0,
    )
    batch_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
    expiry_date = serializers.DateField(required=False, allow_null=True)
    document_number = serializers.CharField(required=False, allow_blank=True, default="", max_length=100)
