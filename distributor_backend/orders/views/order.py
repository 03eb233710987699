# orders/views/order.py

"""
ORDER VIEWSET

Purpose:
- Staff read access to orders.
- Lifecycle actions that drive stock:
    POST /api/orders/{id}/place/   reserve stock, pending -> approved
    POST /api/orders/{id}/cancel/  release stock, -> cancelled

Order creation / editing belongs to the ordering frontend, not this API.
"""

from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from orders.models import Order
from orders.serializers import OrderSerializer
from orders.services.order_lifecycle import cancel_order, place_order
from permissions.roles import (
    CAP_ORDERS_MANAGE,
    CAP_ORDERS_VIEW,
    HasAnyCapability,
    HasCapability,
)
from products.pagination import StandardPagination
from products.services.exceptions import StockLedgerError
from products.views.errors import ledger_error_response


class OrderViewSet(viewsets.ReadOnlyModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated]
    pagination_class = StandardPagination

    required_capability = None
    required_any_capabilities = None

    def get_permissions(self):
        self.required_capability = None
        self.required_any_capabilities = None

        if self.action in {"place", "cancel"}:
            self.required_capability = CAP_ORDERS_MANAGE
            return [IsAuthenticated(), HasCapability()]

        self.required_any_capabilities = {CAP_ORDERS_VIEW, CAP_ORDERS_MANAGE}
        return [IsAuthenticated(), HasAnyCapability()]

    def get_queryset(self):
        qs = (
            Order.objects.select_related("customer")
            .prefetch_related("items", "items__product", "items__variant")
            .order_by("-created_at")
        )

        status_filter = (self.request.query_params.get("status") or "").strip()
        if status_filter:
            qs = qs.filter(status=status_filter)

        return qs

    @action(detail=True, methods=["post"], url_path="place")
    def place(self, request, pk=None):
        order = self.get_object()
        try:
            order = place_order(order, user=request.user)
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        return Response(self.get_serializer(self.get_queryset().get(pk=order.pk)).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        order = self.get_object()
        try:
            order = cancel_order(order, user=request.user)
        except StockLedgerError as exc:
            return ledger_error_response(exc)

        return Response(self.get_serializer(self.get_queryset().get(pk=order.pk)).data, status=status.HTTP_200_OK)
