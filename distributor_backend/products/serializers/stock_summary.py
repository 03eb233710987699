# products/serializers/stock_summary.py

"""
Read-only shapes for stock summaries and analytics (render + OpenAPI schema).
"""

from __future__ import annotations

from rest_framework import serializers


class ProductStockSummarySerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    product_code = serializers.CharField()
    variant_id = serializers.UUIDField(allow_null=True)
    current_stock = serializers.IntegerField()
    total_stock_in = serializers.IntegerField()
    total_stock_out = serializers.IntegerField()
    average_unit_cost = serializers.DecimalField(max_digits=12, decimal_places=2)
    total_value = serializers.DecimalField(max_digits=16, decimal_places=2)
    last_movement_date = serializers.DateTimeField(allow_null=True)
    last_movement_type = serializers.CharField(allow_null=True)


class ProductStockOverviewSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    product_code = serializers.CharField()
    current_stock = serializers.IntegerField()
    low_stock = serializers.BooleanField()
    total_stock_in = serializers.IntegerField()
    total_stock_out = serializers.IntegerField()
    last_movement_date = serializers.DateTimeField(allow_null=True)


class DailyStockSummarySerializer(serializers.Serializer):
    date = serializers.DateField()
    movements = serializers.IntegerField()
    stock_in = serializers.IntegerField()
    stock_out = serializers.IntegerField()
    net_change = serializers.IntegerField()


class TopMovementProductSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    product_name = serializers.CharField()
    product_code = serializers.CharField()
    movement_count = serializers.IntegerField()
    total_quantity = serializers.IntegerField()


class MovementTypeStatisticSerializer(serializers.Serializer):
    movement_type = serializers.CharField()
    label = serializers.CharField()
    movement_count = serializers.IntegerField()
    total_quantity = serializers.IntegerField()


class StockCountResultSerializer(serializers.Serializer):
    system_stock = serializers.IntegerField()
    counted_quantity = serializers.IntegerField(source="movement.new_stock")
    difference = serializers.IntegerField()
    is_adjustment = serializers.BooleanField()


class BulkUpdateResultSerializer(serializers.Serializer):
    changed = serializers.IntegerField()
    unchanged = serializers.IntegerField()
