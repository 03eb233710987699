# products/serializers/__init__.py

from .stock_movement import (
    BulkStockUpdateSerializer,
    InitialStockSerializer,
    ManualMovementSerializer,
    StockCountSerializer,
    StockMovementSerializer,
)
from .stock_summary import (
    BulkUpdateResultSerializer,
    DailyStockSummarySerializer,
    MovementTypeStatisticSerializer,
    ProductStockOverviewSerializer,
    ProductStockSummarySerializer,
    StockCountResultSerializer,
    TopMovementProductSerializer,
)

__all__ = [
    "StockMovementSerializer",
    "StockCountSerializer",
    "ManualMovementSerializer",
    "BulkStockUpdateSerializer",
    "InitialStockSerializer",
    "ProductStockSummarySerializer",
    "ProductStockOverviewSerializer",
    "DailyStockSummarySerializer",
    "TopMovementProductSerializer",
    "MovementTypeStatisticSerializer",
    "StockCountResultSerializer",
    "BulkUpdateResultSerializer",
]
