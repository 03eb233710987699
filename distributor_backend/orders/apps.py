# orders/apps.py

"""
ORDERS APP CONFIG

Dealer orders whose lifecycle reserves and releases stock.
"""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"
