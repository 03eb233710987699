# products/services/stock_reports.py

"""
STOCK MOVEMENT REPORTING (READ-ONLY)

All direction decisions (stock in / stock out) come from
products.movement_rules.stock_in_filter / stock_out_filter.
No locking, no writes.
"""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import (
    Count,
    DecimalField,
    ExpressionWrapper,
    F,
    Max,
    Q,
    Sum,
    Value,
)
from django.db.models.functions import Coalesce, TruncDate
from django.utils import timezone

from products.models import Product, ProductVariant, StockMovement
from products.movement_rules import (
    MOVEMENT_RULES,
    MovementType,
    cost_affecting_types,
    get_rule,
    stock_in_filter,
    stock_out_filter,
)

from .exceptions import InvalidStockValueError, MovementNotFoundError, ProductNotFoundError

TWOPLACES = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")

RANK_BY_QUANTITY = "quantity"
RANK_BY_COUNT = "count"

RECENT_MAX_LIMIT = 50


def _money(value) -> Decimal:
    return Decimal(value or 0).quantize(TWOPLACES)


def _int(value) -> int:
    return int(value or 0)


def _movements():
    return StockMovement.objects.select_related("product", "variant", "performed_by")


def _active():
    return _movements().filter(status=StockMovement.Status.ACTIVE)


def resolve_period(start: Optional[date] = None, end: Optional[date] = None):
    """Default window: the last STOCK_ANALYTICS_DEFAULT_DAYS days up to today."""
    end = end or timezone.localdate()
    if start is None:
        days = int(getattr(settings, "STOCK_ANALYTICS_DEFAULT_DAYS", 30))
        start = end - timedelta(days=max(days, 1) - 1)

    if start > end:
        raise InvalidStockValueError("start date must be on or before end date")
    return start, end


def _in_period(qs, start: date, end: date):
    return qs.filter(movement_date__date__gte=start, movement_date__date__lte=end)


def _holder_movements(product_id, variant_id=None):
    """Without a variant the product's own rows and all of its variants' rows count."""
    qs = _active().filter(product_id=product_id)
    if variant_id is not None:
        return qs.filter(variant_id=variant_id)
    return qs


def _get_holder(product_id, variant_id=None):
    try:
        if variant_id is not None:
            return ProductVariant.objects.select_related("product").get(
                pk=variant_id, product_id=product_id
            )
        return Product.objects.get(pk=product_id)
    except (Product.DoesNotExist, ProductVariant.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise ProductNotFoundError(f"Product {product_id} not found") from exc


# ============================================================
# LOOKUPS / LISTS
# ============================================================

def get_movement(movement_id) -> StockMovement:
    try:
        return _movements().get(pk=movement_id)
    except (StockMovement.DoesNotExist, DjangoValidationError, ValueError) as exc:
        raise MovementNotFoundError(f"Stock movement {movement_id} not found") from exc


def list_movements(
    *,
    movement_type: Optional[str] = None,
    product_id=None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    status: Optional[str] = None,
):
    return filter_movements(
        _movements(),
        movement_type=movement_type,
        product_id=product_id,
        start=start,
        end=end,
        status=status,
    )


def filter_movements(
    qs,
    *,
    movement_type: Optional[str] = None,
    product_id=None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    status: Optional[str] = None,
):
    """
    Most specific filter combination wins:
    type+product+range > type+product > range+product > type > product > range.
    Lower-ranked fields are ignored once a combination matches.
    """
    if status:
        qs = qs.filter(status=status)

    has_range = start is not None and end is not None
    if has_range and start > end:
        raise InvalidStockValueError("start date must be on or before end date")

    if movement_type and product_id and has_range:
        qs = _in_period(qs.filter(movement_type=movement_type, product_id=product_id), start, end)
    elif movement_type and product_id:
        qs = qs.filter(movement_type=movement_type, product_id=product_id)
    elif has_range and product_id:
        qs = _in_period(qs.filter(product_id=product_id), start, end)
    elif movement_type:
        qs = qs.filter(movement_type=movement_type)
    elif product_id:
        qs = qs.filter(product_id=product_id)
    elif has_range:
        qs = _in_period(qs, start, end)

    return qs.order_by("-movement_date", "-created_at")


def search_movements(term: str):
    term = (term or "").strip()
    if not term:
        raise InvalidStockValueError("search term is required")

    return _movements().filter(
        Q(product__name__icontains=term)
        | Q(product__code__icontains=term)
        | Q(notes__icontains=term)
        | Q(document_number__icontains=term)
    ).order_by("-movement_date", "-created_at")


def movements_for_product(product_id, variant_id=None):
    _get_holder(product_id, variant_id)
    qs = _active().filter(product_id=product_id)
    if variant_id is not None:
        qs = qs.filter(variant_id=variant_id)
    return qs.order_by("-movement_date", "-created_at")


def recent_movements(limit: int = 10):
    limit = max(1, min(int(limit or 10), RECENT_MAX_LIMIT))
    return list(_active().order_by("-movement_date", "-created_at")[:limit])


def movements_by_reference(reference_type: str, reference_id):
    try:
        return list(
            _active()
            .filter(reference_type=reference_type, reference_id=reference_id)
            .order_by("movement_date", "created_at")
        )
    except (DjangoValidationError, ValueError) as exc:
        raise InvalidStockValueError(f"Invalid reference id: {reference_id}") from exc


# ============================================================
# SUMMARIES
# ============================================================

def _variant_stock_totals(product_id=None) -> dict:
    qs = ProductVariant.objects.all()
    if product_id is not None:
        qs = qs.filter(product_id=product_id)
    return {
        r["product_id"]: _int(r["total"])
        for r in qs.values("product_id").annotate(total=Sum("stock_quantity")).order_by()
    }


def _weighted_average_cost(qs) -> Decimal:
    costed = qs.filter(
        unit_cost__isnull=False, movement_type__in=cost_affecting_types()
    ).aggregate(
        value=Sum(
            ExpressionWrapper(
                F("unit_cost") * F("quantity"),
                output_field=DecimalField(max_digits=18, decimal_places=2),
            )
        ),
        quantity=Sum("quantity"),
    )
    quantity = _int(costed["quantity"])
    if quantity == 0:
        return ZERO_MONEY
    return _money(Decimal(costed["value"] or 0) / Decimal(quantity))


def product_stock_summary(product_id, variant_id=None) -> dict:
    """
    Current stock, stock in/out totals, quantity-weighted average unit cost,
    stock value and the most recent movement of one stock holder.
    """
    holder = _get_holder(product_id, variant_id)
    product = holder.product if variant_id is not None else holder
    qs = _holder_movements(product_id, variant_id)

    totals = qs.aggregate(
        total_in=Coalesce(Sum("quantity", filter=stock_in_filter()), Value(0)),
        total_out=Coalesce(Sum("quantity", filter=stock_out_filter()), Value(0)),
    )

    if variant_id is not None:
        current_stock = _int(holder.stock_quantity)
    else:
        current_stock = _int(holder.stock_quantity) + _variant_stock_totals(product.pk).get(product.pk, 0)
    average_cost = _weighted_average_cost(qs)
    last = qs.order_by("-movement_date", "-created_at").first()

    return {
        "product_id": str(product.pk),
        "product_name": product.name,
        "product_code": product.code,
        "variant_id": str(variant_id) if variant_id is not None else None,
        "current_stock": current_stock,
        "total_stock_in": _int(totals["total_in"]),
        "total_stock_out": _int(totals["total_out"]),
        "average_unit_cost": average_cost,
        "total_value": _money(average_cost * current_stock),
        "last_movement_date": last.movement_date if last else None,
        "last_movement_type": last.movement_label if last else None,
    }


def products_stock_overview() -> list:
    """One row per active product; variant stock rolls up into its product."""
    own = Q(stock_movements__status=StockMovement.Status.ACTIVE)
    variant_stock = _variant_stock_totals()

    qs = (
        Product.objects.filter(is_active=True)
        .annotate(
            total_in=Coalesce(
                Sum("stock_movements__quantity", filter=own & stock_in_filter("stock_movements__")),
                Value(0),
            ),
            total_out=Coalesce(
                Sum("stock_movements__quantity", filter=own & stock_out_filter("stock_movements__")),
                Value(0),
            ),
            last_movement_date=Max("stock_movements__movement_date", filter=own),
        )
        .order_by("name")
    )

    rows = []
    for p in qs:
        current_stock = _int(p.stock_quantity) + variant_stock.get(p.pk, 0)
        rows.append(
            {
                "product_id": str(p.pk),
                "product_name": p.name,
                "product_code": p.code,
                "current_stock": current_stock,
                "low_stock": current_stock <= _int(p.low_stock_threshold),
                "total_stock_in": _int(p.total_in),
                "total_stock_out": _int(p.total_out),
                "last_movement_date": p.last_movement_date,
            }
        )
    return rows


def _daily_rows(qs):
    return (
        qs.annotate(day=TruncDate("movement_date"))
        .values("day")
        .annotate(
            movements=Count("id"),
            stock_in=Coalesce(Sum("quantity", filter=stock_in_filter()), Value(0)),
            stock_out=Coalesce(Sum("quantity", filter=stock_out_filter()), Value(0)),
        )
        .order_by("day")
    )


def _daily_payload(day, movements=0, stock_in=0, stock_out=0) -> dict:
    return {
        "date": day,
        "movements": _int(movements),
        "stock_in": _int(stock_in),
        "stock_out": _int(stock_out),
        "net_change": _int(stock_in) - _int(stock_out),
    }


def period_stock_summary(start: Optional[date] = None, end: Optional[date] = None) -> list:
    """Per calendar date: movement count, stock in, stock out, net change."""
    start, end = resolve_period(start, end)
    rows = _daily_rows(_in_period(_active(), start, end))
    return [
        _daily_payload(r["day"], r["movements"], r["stock_in"], r["stock_out"])
        for r in rows
    ]


def daily_stock_summary(day: Optional[date] = None) -> dict:
    day = day or timezone.localdate()
    rows = list(_daily_rows(_in_period(_active(), day, day)))
    if not rows:
        return _daily_payload(day)
    r = rows[0]
    return _daily_payload(day, r["movements"], r["stock_in"], r["stock_out"])


def top_movement_products(
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: int = 10,
    rank_by: str = RANK_BY_QUANTITY,
) -> list:
    if rank_by not in (RANK_BY_QUANTITY, RANK_BY_COUNT):
        raise InvalidStockValueError("rank_by must be 'quantity' or 'count'")

    max_limit = int(getattr(settings, "STOCK_TOP_PRODUCTS_MAX_LIMIT", 50))
    limit = max(1, min(int(limit or 10), max_limit))
    start, end = resolve_period(start, end)

    primary = "total_quantity" if rank_by == RANK_BY_QUANTITY else "movement_count"
    secondary = "movement_count" if rank_by == RANK_BY_QUANTITY else "total_quantity"

    rows = (
        _in_period(_active(), start, end)
        .values("product_id", "product__name", "product__code")
        .annotate(movement_count=Count("id"), total_quantity=Sum("quantity"))
        .order_by(f"-{primary}", f"-{secondary}", "product__name")[:limit]
    )

    return [
        {
            "product_id": str(r["product_id"]),
            "product_name": r["product__name"],
            "product_code": r["product__code"],
            "movement_count": _int(r["movement_count"]),
            "total_quantity": _int(r["total_quantity"]),
        }
        for r in rows
    ]


def movement_type_statistics(start: Optional[date] = None, end: Optional[date] = None) -> list:
    start, end = resolve_period(start, end)
    counts = {
        r["movement_type"]: r
        for r in _in_period(_active(), start, end)
        .values("movement_type")
        .annotate(movement_count=Count("id"), total_quantity=Sum("quantity"))
    }

    stats = []
    for code in MOVEMENT_RULES:
        row = counts.get(str(code), {})
        stats.append(
            {
                "movement_type": str(code),
                "label": get_rule(code).label,
                "movement_count": _int(row.get("movement_count")),
                "total_quantity": _int(row.get("total_quantity")),
            }
        )
    return stats


def todays_movement_count() -> int:
    today = timezone.localdate()
    return _in_period(_active(), today, today).count()


def performance_metrics() -> dict:
    days = int(getattr(settings, "STOCK_ANALYTICS_DEFAULT_DAYS", 30))
    start, end = resolve_period()

    window = _in_period(_active(), start, end)
    window_count = window.count()

    status_counts = {
        r["status"]: r["n"]
        for r in StockMovement.objects.values("status").annotate(n=Count("id")).order_by()
    }

    return {
        "total_movements": sum(status_counts.values()),
        "active_movements": _int(status_counts.get(StockMovement.Status.ACTIVE)),
        "archived_movements": _int(status_counts.get(StockMovement.Status.DELETED)),
        "movements_today": todays_movement_count(),
        "window_days": days,
        "window_movements": window_count,
        "average_movements_per_day": _money(Decimal(window_count) / Decimal(max(days, 1))),
        "products_with_movements": window.order_by().values("product_id").distinct().count(),
        "stock_count_corrections": window.filter(
            reference_type=StockMovement.ReferenceType.STOCK_COUNT
        ).exclude(movement_type=MovementType.STOCK_COUNT).count(),
    }
