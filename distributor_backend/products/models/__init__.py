"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product
from .product_variant import ProductVariant
from .stock_movement import StockMovement

__all__ = [
    "Product",
    "ProductVariant",
    "StockMovement",
]
