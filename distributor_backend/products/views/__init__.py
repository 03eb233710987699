# products/views/__init__.py

"""
Products views package exports (router imports).
"""

from .stock_analytics import StockAnalyticsViewSet, StockSummaryViewSet
from .stock_movements import StockMovementViewSet

__all__ = [
    "StockMovementViewSet",
    "StockSummaryViewSet",
    "StockAnalyticsViewSet",
]
