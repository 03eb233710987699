# products/urls.py

"""
PRODUCTS URLS

Purpose:
- Register stock ledger routes under /api/products/
    /stock-movements/   ledger reads + count / manual / bulk / initial
    /stock-summary/     per-product and all-product summaries
    /stock-analytics/   movement statistics and aggregations
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from products.views import (
    StockAnalyticsViewSet,
    StockMovementViewSet,
    StockSummaryViewSet,
)

router = DefaultRouter()

router.register(r"stock-movements", StockMovementViewSet, basename="stock-movements")
router.register(r"stock-summary", StockSummaryViewSet, basename="stock-summary")
router.register(r"stock-analytics", StockAnalyticsViewSet, basename="stock-analytics")

urlpatterns = [
    path("", include(router.urls)),
]
