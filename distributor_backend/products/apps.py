# products/apps.py

"""
PRODUCTS APP CONFIG

Catalog stock holders (Product, ProductVariant) and the stock movement ledger.
"""

from django.apps import AppConfig


class ProductsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "products"
    verbose_name = "Products & Stock Ledger"
