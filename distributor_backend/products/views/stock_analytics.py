# products/views/stock_analytics.py

"""
STOCK SUMMARY + ANALYTICS VIEWSETS (READ-ONLY)

/api/products/stock-summary/product/{product_id}/
/api/products/stock-summary/all/
/api/products/stock-analytics/{movement-types|daily-summary|period-summary|top-movements|metrics}/
"""

from __future__ import annotations

from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_IMPORT,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
)
from products.serializers import (
    DailyStockSummarySerializer,
    MovementTypeStatisticSerializer,
    ProductStockOverviewSerializer,
    ProductStockSummarySerializer,
    TopMovementProductSerializer,
)
from products.services.exceptions import StockLedgerError
from products.services import stock_reports

from .errors import ledger_error_response
from .stock_movements import parse_date_param, parse_int_param

PERIOD_PARAMETERS = [
    OpenApiParameter("start_date", str, description="YYYY-MM-DD (default: window start)"),
    OpenApiParameter("end_date", str, description="YYYY-MM-DD (default: today)"),
]


class InventoryReadViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated, HasAnyCapability]
    required_any_capabilities = {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_ADJUST,
        CAP_INVENTORY_IMPORT,
    }


class StockSummaryViewSet(InventoryReadViewSet):
    @extend_schema(
        parameters=[OpenApiParameter("variant_id", str)],
        responses=ProductStockSummarySerializer,
    )
    @action(detail=False, methods=["get"], url_path=r"product/(?P<product_id>[^/.]+)")
    def product(self, request, product_id=None):
        variant_id = (request.query_params.get("variant_id") or "").strip() or None
        try:
            summary = stock_reports.product_stock_summary(product_id, variant_id)
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(ProductStockSummarySerializer(summary).data)

    @extend_schema(responses=ProductStockOverviewSerializer(many=True))
    @action(detail=False, methods=["get"], url_path="all")
    def all(self, request):
        rows = stock_reports.products_stock_overview()
        data = ProductStockOverviewSerializer(rows, many=True).data
        return Response({"count": len(data), "results": data})


class StockAnalyticsViewSet(InventoryReadViewSet):
    @extend_schema(parameters=PERIOD_PARAMETERS, responses=MovementTypeStatisticSerializer(many=True))
    @action(detail=False, methods=["get"], url_path="movement-types")
    def movement_types(self, request):
        try:
            stats = stock_reports.movement_type_statistics(
                parse_date_param(request, "start_date"),
                parse_date_param(request, "end_date"),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(MovementTypeStatisticSerializer(stats, many=True).data)

    @extend_schema(
        parameters=[OpenApiParameter("date", str, description="YYYY-MM-DD (default: today)")],
        responses=DailyStockSummarySerializer,
    )
    @action(detail=False, methods=["get"], url_path="daily-summary")
    def daily_summary(self, request):
        try:
            summary = stock_reports.daily_stock_summary(parse_date_param(request, "date"))
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(DailyStockSummarySerializer(summary).data)

    @extend_schema(parameters=PERIOD_PARAMETERS, responses=DailyStockSummarySerializer(many=True))
    @action(detail=False, methods=["get"], url_path="period-summary")
    def period_summary(self, request):
        try:
            rows = stock_reports.period_stock_summary(
                parse_date_param(request, "start_date"),
                parse_date_param(request, "end_date"),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(DailyStockSummarySerializer(rows, many=True).data)

    @extend_schema(
        parameters=PERIOD_PARAMETERS
        + [
            OpenApiParameter("limit", int),
            OpenApiParameter("rank_by", str, enum=["quantity", "count"]),
        ],
        responses=TopMovementProductSerializer(many=True),
    )
    @action(detail=False, methods=["get"], url_path="top-movements")
    def top_movements(self, request):
        try:
            rows = stock_reports.top_movement_products(
                parse_date_param(request, "start_date"),
                parse_date_param(request, "end_date"),
                limit=parse_int_param(request, "limit", 10),
                rank_by=(request.query_params.get("rank_by") or "quantity").strip().lower(),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(TopMovementProductSerializer(rows, many=True).data)

    @action(detail=False, methods=["get"], url_path="metrics")
    def metrics(self, request):
        return Response(stock_reports.performance_metrics())
