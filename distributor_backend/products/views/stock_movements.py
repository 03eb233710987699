"""
======================================================
PATH: products/views/stock_movements.py
======================================================
STOCK MOVEMENT VIEWSET

Purpose:
- Read the movement ledger (list / detail / per product / recent / search /
  by reference).
- Entry points for ledger-writing operations that have no other owner:
  stock count, manual movement, bulk update, initial stock.

Rules:
- Movements are immutable: no PUT / PATCH / DELETE.
- Views validate input and call services; services own every stock write.
"""

from __future__ import annotations

from datetime import datetime

from django_filters.rest_framework import DjangoFilterBackend
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from permissions.roles import (
    CAP_INVENTORY_ADJUST,
    CAP_INVENTORY_IMPORT,
    CAP_INVENTORY_VIEW,
    HasAnyCapability,
    HasCapability,
)
from products.filters import StockMovementFilter
from products.models import StockMovement
from products.pagination import StandardPagination
from products.serializers import (
    BulkStockUpdateSerializer,
    BulkUpdateResultSerializer,
    InitialStockSerializer,
    ManualMovementSerializer,
    StockCountResultSerializer,
    StockCountSerializer,
    StockMovementSerializer,
)
from products.services.bulk_updates import BulkRow, apply_bulk_stock_rows
from products.services.exceptions import InvalidStockValueError, StockLedgerError
from products.services.ledger import assign_initial_stock, record_manual_movement
from products.services.stock_count import reconcile_stock_count
from products.services.stock_reports import (
    get_movement,
    movements_by_reference,
    movements_for_product,
    recent_movements,
    search_movements,
)

from .errors import ledger_error_response

READ_ACTIONS = {"list", "retrieve", "product", "recent", "search", "reference"}


def parse_date_param(request, name: str):
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        return None
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError:
        raise InvalidStockValueError(f"{name} must be YYYY-MM-DD")


def parse_int_param(request, name: str, default: int) -> int:
    raw = (request.query_params.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidStockValueError(f"{name} must be an integer")


class StockMovementViewSet(viewsets.ReadOnlyModelViewSet):
    """
    /api/products/stock-movements/
    """

    serializer_class = StockMovementSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = StockMovementFilter

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        # reset per request to avoid state leaking between actions
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in READ_ACTIONS:
            self.required_any_capabilities = {
                CAP_INVENTORY_VIEW,
                CAP_INVENTORY_ADJUST,
                CAP_INVENTORY_IMPORT,
            }
            return [IsAuthenticated(), HasAnyCapability()]

        if self.action in {"count", "manual"}:
            self.required_capability = CAP_INVENTORY_ADJUST
            return [IsAuthenticated(), HasCapability()]

        if self.action in {"bulk", "initial_stock"}:
            self.required_capability = CAP_INVENTORY_IMPORT
            return [IsAuthenticated(), HasCapability()]

        return [IsAuthenticated()]

    def get_queryset(self):
        return (
            StockMovement.objects.select_related("product", "variant", "performed_by")
            .order_by("-movement_date", "-created_at")
        )

    def _paged(self, queryset):
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    # -------------------------------------------------
    # READ
    # -------------------------------------------------
    @extend_schema(
        parameters=[
            OpenApiParameter("movement_type", str),
            OpenApiParameter("product_id", str),
            OpenApiParameter("start_date", str, description="YYYY-MM-DD"),
            OpenApiParameter("end_date", str, description="YYYY-MM-DD"),
            OpenApiParameter("status", str),
        ]
    )
    def list(self, request, *args, **kwargs):
        try:
            return super().list(request, *args, **kwargs)
        except StockLedgerError as exc:
            return ledger_error_response(exc)

    def retrieve(self, request, pk=None, *args, **kwargs):
        try:
            movement = get_movement(pk)
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return Response(self.get_serializer(movement).data)

    @action(detail=False, methods=["get"], url_path=r"product/(?P<product_id>[^/.]+)")
    def product(self, request, product_id=None):
        variant_id = (request.query_params.get("variant_id") or "").strip() or None
        try:
            qs = movements_for_product(product_id, variant_id)
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return self._paged(qs)

    @action(detail=False, methods=["get"], url_path="recent")
    def recent(self, request):
        try:
            limit = parse_int_param(request, "limit", 10)
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        data = self.get_serializer(recent_movements(limit), many=True).data
        return Response({"count": len(data), "results": data})

    @extend_schema(parameters=[OpenApiParameter("q", str, required=True)])
    @action(detail=False, methods=["get"], url_path="search")
    def search(self, request):
        try:
            qs = search_movements(request.query_params.get("q") or "")
        except StockLedgerError as exc:
            return ledger_error_response(exc)
        return self._paged(qs)

    @action(
        detail=False,
        methods=["get"],
        url_path=r"reference/(?P<reference_type>[^/.]+)/(?P<reference_id>[^/.]+)",
    )
    def reference(self, request, reference_type=None, reference_id=None):
        try:
            movements = movements_by_reference(reference_type.upper(), reference_id)
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        data = self.get_serializer(movements, many=True).data
        return Response({"count": len(data), "results": data})

    # -------------------------------------------------
    # WRITE (service-owned)
    # -------------------------------------------------
    @extend_schema(request=StockCountSerializer)
    @action(detail=False, methods=["post"], url_path="count")
    def count(self, request):
        """
        POST /api/products/stock-movements/count/

        Physical stock count: informational row when it matches the system
        balance, otherwise a correcting adjustment.
        """
        serializer = StockCountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            result = reconcile_stock_count(
                product_id=v["product_id"],
                variant_id=v.get("variant_id"),
                counted_quantity=v["counted_quantity"],
                document_number=v.get("document_number", ""),
                notes=v.get("notes", ""),
                user=request.user,
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "result": StockCountResultSerializer(result).data,
                "movement": self.get_serializer(result.movement).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(request=ManualMovementSerializer)
    @action(detail=False, methods=["post"], url_path="manual")
    def manual(self, request):
        serializer = ManualMovementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            movement = record_manual_movement(
                product=v["product_id"],
                variant=v.get("variant_id"),
                movement_type=v["movement_type"],
                quantity=v["quantity"],
                user=request.user,
                unit_cost=v.get("unit_cost"),
                batch_number=v.get("batch_number", ""),
                expiry_date=v.get("expiry_date"),
                document_number=v.get("document_number", ""),
                notes=v.get("notes", ""),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        return Response(self.get_serializer(movement).data, status=status.HTTP_201_CREATED)

    @extend_schema(request=BulkStockUpdateSerializer)
    @action(detail=False, methods=["post"], url_path="bulk")
    def bulk(self, request):
        """
        POST /api/products/stock-movements/bulk/

        Already-parsed import rows; all rows succeed or none do.
        """
        serializer = BulkStockUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        rows = [BulkRow(**row) for row in v["rows"]]

        try:
            result = apply_bulk_stock_rows(
                rows,
                operation=v["operation"],
                user=request.user,
                batch_label=v.get("batch_label", ""),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        return Response(
            {
                "result": BulkUpdateResultSerializer(result).data,
                "movements": self.get_serializer(result.movements, many=True).data,
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(request=InitialStockSerializer)
    @action(detail=False, methods=["post"], url_path="initial")
    def initial_stock(self, request):
        serializer = InitialStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        v = serializer.validated_data

        try:
            movement = assign_initial_stock(
                product=v["product_id"],
                variant=v.get("variant_id"),
                initial_stock=v["initial_stock"],
                user=request.user,
                unit_cost=v.get("unit_cost"),
                batch_number=v.get("batch_number", ""),
                expiry_date=v.get("expiry_date"),
                document_number=v.get("document_number", ""),
            )
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        if movement is None:
            return Response({"detail": "Initial stock is zero; nothing recorded."}, status=status.HTTP_200_OK)

        return Response(self.get_serializer(movement).data, status=status.HTTP_201_CREATED)
