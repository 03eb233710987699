# products/filters.py

"""
Query-parameter filters for the stock movement list.

Parameters are validated by django-filter; the filter combination itself is
resolved by stock_reports.filter_movements (most specific combination wins).
"""

from __future__ import annotations

import django_filters

from products.models import StockMovement
from products.services.stock_reports import filter_movements


class StockMovementFilter(django_filters.FilterSet):
    movement_type = django_filters.ChoiceFilter(choices=StockMovement.MovementType.choices)
    product_id = django_filters.UUIDFilter()
    start_date = django_filters.DateFilter()
    end_date = django_filters.DateFilter()
    status = django_filters.ChoiceFilter(choices=StockMovement.Status.choices)

    class Meta:
        model = StockMovement
        fields = ["movement_type", "status"]

    def filter_queryset(self, queryset):
        data = self.form.cleaned_data
        return filter_movements(
            queryset,
            movement_type=data.get("movement_type") or None,
            product_id=data.get("product_id"),
            start=data.get("start_date"),
            end=data.get("end_date"),
            status=data.get("status") or None,
        )
