from .order import OrderItemSerializer, OrderSerializer

__all__ = [
    "OrderSerializer",
    "OrderItemSerializer",
]
