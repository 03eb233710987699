# products/tests/test_stock_reports.py

from datetime import timedelta
from decimal import Decimal

from django.test import TestCase, override_settings
from django.utils import timezone

from orders.models import Order, OrderItem
from products.models import StockMovement
from products.movement_rules import MovementType, ReferenceType
from products.services import stock_reports
from products.services.exceptions import (
    InvalidStockValueError,
    MovementNotFoundError,
    ProductNotFoundError,
)
from products.services.ledger import archive_movements, record_manual_movement
from products.services.reservations import apply_order_stock

from .factories import make_product, make_user, make_variant


class StockReportTests(TestCase):
    """
    Reporting tests (read-only services).

    Fixture (all dated today):
    - bolts: initial 100 @ 10.00, stock in 50 @ 16.00, stock out 30
    - nuts:  initial 20 @ 2.50, three stock outs of 5
    """

    def setUp(self):
        self.user = make_user()
        self.bolts = make_product(
            code="BOLT-M8", name="Hex Bolt M8", stock=100, unit_cost=Decimal("10.00")
        )
        self.nuts = make_product(
            code="NUT-M8", name="Hex Nut M8", stock=20, unit_cost=Decimal("2.50")
        )

        record_manual_movement(
            product=self.bolts,
            movement_type=MovementType.STOCK_IN,
            quantity=50,
            unit_cost=Decimal("16.00"),
            document_number="GRN-7781",
        )
        record_manual_movement(
            product=self.bolts,
            movement_type=MovementType.STOCK_OUT,
            quantity=30,
            notes="Counter sale",
        )
        for _ in range(3):
            record_manual_movement(product=self.nuts, movement_type=MovementType.STOCK_OUT, quantity=5)

        self.today = timezone.localdate()

    # -------------------------------------------------
    # summaries
    # -------------------------------------------------
    def test_product_summary(self):
        summary = stock_reports.product_stock_summary(self.bolts.pk)

        self.assertEqual(summary["current_stock"], 120)
        self.assertEqual(summary["total_stock_in"], 150)
        self.assertEqual(summary["total_stock_out"], 30)
        self.assertEqual(summary["product_code"], "BOLT-M8")
        self.assertIn(summary["last_movement_type"], {"Stock In", "Stock Out", "Initial Stock"})

    def test_average_cost_is_quantity_weighted(self):
        summary = stock_reports.product_stock_summary(self.bolts.pk)

        # (100 * 10.00 + 50 * 16.00) / 150
        self.assertEqual(summary["average_unit_cost"], Decimal("12.00"))
        self.assertEqual(summary["total_value"], Decimal("1440.00"))

    def test_summary_without_costs(self):
        product = make_product(code="PIN-4", name="Cotter Pin 4mm")
        summary = stock_reports.product_stock_summary(product.pk)

        self.assertEqual(summary["average_unit_cost"], Decimal("0.00"))
        self.assertIsNone(summary["last_movement_date"])

    def test_summary_unknown_product(self):
        with self.assertRaises(ProductNotFoundError):
            stock_reports.product_stock_summary("not-a-uuid")

    def test_overview(self):
        rows = stock_reports.products_stock_overview()

        self.assertEqual([r["product_code"] for r in rows], ["BOLT-M8", "NUT-M8"])
        self.assertEqual(rows[0]["total_stock_in"], 150)
        self.assertEqual(rows[0]["total_stock_out"], 30)
        self.assertEqual(rows[1]["current_stock"], 5)
        self.assertTrue(rows[1]["low_stock"])

    def test_period_summary(self):
        rows = stock_reports.period_stock_summary(self.today, self.today)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["movements"], 7)
        self.assertEqual(rows[0]["stock_in"], 170)
        self.assertEqual(rows[0]["stock_out"], 45)
        self.assertEqual(rows[0]["net_change"], 125)

    def test_daily_summary_for_a_quiet_day(self):
        quiet = self.today - timedelta(days=3)
        day = stock_reports.daily_stock_summary(quiet)

        self.assertEqual(day["date"], quiet)
        self.assertEqual(day["movements"], 0)
        self.assertEqual(day["net_change"], 0)

    def test_inverted_period_is_rejected(self):
        with self.assertRaises(InvalidStockValueError):
            stock_reports.period_stock_summary(self.today, self.today - timedelta(days=1))

    # -------------------------------------------------
    # rankings / statistics
    # -------------------------------------------------
    def test_top_products_by_quantity_and_count(self):
        by_quantity = stock_reports.top_movement_products(self.today, self.today)
        self.assertEqual(by_quantity[0]["product_code"], "BOLT-M8")
        self.assertEqual(by_quantity[0]["total_quantity"], 180)

        by_count = stock_reports.top_movement_products(self.today, self.today, rank_by="count")
        self.assertEqual(by_count[0]["product_code"], "NUT-M8")
        self.assertEqual(by_count[0]["movement_count"], 4)

    @override_settings(STOCK_TOP_PRODUCTS_MAX_LIMIT=1)
    def test_top_products_limit_is_capped(self):
        rows = stock_reports.top_movement_products(self.today, self.today, limit=25)
        self.assertEqual(len(rows), 1)

    def test_top_products_rank_must_be_known(self):
        with self.assertRaises(InvalidStockValueError):
            stock_reports.top_movement_products(rank_by="value")

    def test_movement_type_statistics(self):
        stats = {s["movement_type"]: s for s in stock_reports.movement_type_statistics()}

        self.assertEqual(len(stats), len(MovementType))
        self.assertEqual(stats["STOCK_OUT"]["movement_count"], 4)
        self.assertEqual(stats["STOCK_OUT"]["total_quantity"], 45)
        self.assertEqual(stats["ORDER_RESERVED"]["movement_count"], 0)

    def test_performance_metrics(self):
        metrics = stock_reports.performance_metrics()

        self.assertEqual(metrics["total_movements"], 7)
        self.assertEqual(metrics["active_movements"], 7)
        self.assertEqual(metrics["archived_movements"], 0)
        self.assertEqual(metrics["movements_today"], 7)
        self.assertEqual(metrics["products_with_movements"], 2)

    def test_archived_rows_leave_the_reports(self):
        archive_movements(before=timezone.now() + timedelta(days=1), product=self.nuts)

        metrics = stock_reports.performance_metrics()
        self.assertEqual(metrics["archived_movements"], 4)
        self.assertEqual(stock_reports.todays_movement_count(), 3)

    # -------------------------------------------------
    # lookups / lists
    # -------------------------------------------------
    def test_get_movement(self):
        movement = StockMovement.objects.filter(product=self.bolts).first()
        self.assertEqual(stock_reports.get_movement(movement.pk), movement)

        with self.assertRaises(MovementNotFoundError):
            stock_reports.get_movement("not-a-uuid")

    def test_type_and_product_filter(self):
        rows = stock_reports.list_movements(
            movement_type=MovementType.STOCK_OUT, product_id=self.bolts.pk
        )
        self.assertEqual(rows.count(), 1)

    def test_type_filter_alone(self):
        rows = stock_reports.list_movements(movement_type=MovementType.STOCK_OUT)
        self.assertEqual(rows.count(), 4)

    def test_range_and_product_filter(self):
        rows = stock_reports.list_movements(
            product_id=self.nuts.pk, start=self.today, end=self.today
        )
        self.assertEqual(rows.count(), 4)

        empty = stock_reports.list_movements(
            product_id=self.nuts.pk,
            start=self.today - timedelta(days=10),
            end=self.today - timedelta(days=5),
        )
        self.assertEqual(empty.count(), 0)

    def test_inverted_range_filter_is_rejected(self):
        with self.assertRaises(InvalidStockValueError):
            stock_reports.list_movements(start=self.today, end=self.today - timedelta(days=1))

    def test_search(self):
        self.assertEqual(stock_reports.search_movements("GRN-7781").count(), 1)
        self.assertEqual(stock_reports.search_movements("nut-m8").count(), 4)
        self.assertEqual(stock_reports.search_movements("counter sale").count(), 1)

        with self.assertRaises(InvalidStockValueError):
            stock_reports.search_movements("   ")

    def test_recent_is_clamped(self):
        self.assertEqual(len(stock_reports.recent_movements(2)), 2)
        self.assertEqual(len(stock_reports.recent_movements(500)), 7)

    def test_movements_for_product(self):
        self.assertEqual(stock_reports.movements_for_product(self.bolts.pk).count(), 3)

    def test_movements_by_reference(self):
        order = Order.objects.create(customer=make_user(username="dealer_one", role="dealer"))
        OrderItem.objects.create(order=order, product=self.bolts, quantity=2)
        OrderItem.objects.create(order=order, product=self.nuts, quantity=1)
        apply_order_stock(order, is_reservation=True)

        rows = stock_reports.movements_by_reference(ReferenceType.ORDER, order.pk)
        self.assertEqual(len(rows), 2)
        self.assertTrue(all(r.movement_type == MovementType.ORDER_RESERVED for r in rows))

        with self.assertRaises(InvalidStockValueError):
            stock_reports.movements_by_reference(ReferenceType.ORDER, "garbage")

    def test_archived_rows_leave_history_and_references(self):
        order = Order.objects.create(customer=make_user(username="dealer_one", role="dealer"))
        OrderItem.objects.create(order=order, product=self.bolts, quantity=2)
        apply_order_stock(order, is_reservation=True)

        archive_movements(before=timezone.now() + timedelta(days=1), product=self.bolts)

        self.assertEqual(stock_reports.movements_for_product(self.bolts.pk).count(), 0)
        self.assertEqual(stock_reports.movements_by_reference(ReferenceType.ORDER, order.pk), [])

    def test_average_cost_ignores_non_cost_types(self):
        record_manual_movement(
            product=self.bolts,
            movement_type=MovementType.ADJUSTMENT_IN,
            quantity=30,
            unit_cost=Decimal("99.00"),
        )

        summary = stock_reports.product_stock_summary(self.bolts.pk)
        self.assertEqual(summary["average_unit_cost"], Decimal("12.00"))

    # -------------------------------------------------
    # default window
    # -------------------------------------------------
    @override_settings(STOCK_ANALYTICS_DEFAULT_DAYS=30)
    def test_default_window_spans_configured_days(self):
        start, end = stock_reports.resolve_period()

        self.assertEqual(end, self.today)
        self.assertEqual((end - start).days + 1, 30)

    @override_settings(STOCK_ANALYTICS_DEFAULT_DAYS=30)
    def test_rows_older_than_the_window_are_not_counted(self):
        old = StockMovement.objects.filter(product=self.nuts).order_by("movement_date").first()
        StockMovement.objects.filter(pk=old.pk).update(
            movement_date=timezone.now() - timedelta(days=30)
        )

        metrics = stock_reports.performance_metrics()
        self.assertEqual(metrics["window_movements"], 6)
        self.assertEqual(metrics["average_movements_per_day"], Decimal("0.20"))


class VariantStockReportTests(TestCase):
    """
    GUARANTEES:
    - A product's summary rolls up the stock and movements of its variants
    - A variant summary stays scoped to that variant
    """

    def setUp(self):
        self.gloves = make_product(code="GLOVE-W", name="Work Glove")
        self.gloves.low_stock_threshold = 50
        self.gloves.save()
        self.small = make_variant(self.gloves, size="S", stock=40)
        self.medium = make_variant(self.gloves, size="M", stock=60)

        record_manual_movement(
            product=self.gloves,
            variant=self.medium,
            movement_type=MovementType.STOCK_OUT,
            quantity=10,
        )

    def test_product_summary_includes_variants(self):
        summary = stock_reports.product_stock_summary(self.gloves.pk)

        self.assertEqual(summary["current_stock"], 90)
        self.assertEqual(summary["total_stock_in"], 100)
        self.assertEqual(summary["total_stock_out"], 10)

    def test_variant_summary_is_scoped(self):
        summary = stock_reports.product_stock_summary(self.gloves.pk, self.medium.pk)

        self.assertEqual(summary["current_stock"], 50)
        self.assertEqual(summary["total_stock_in"], 60)
        self.assertEqual(summary["total_stock_out"], 10)

    def test_overview_includes_variants(self):
        rows = stock_reports.products_stock_overview()

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]["current_stock"], 90)
        self.assertEqual(rows[0]["total_stock_in"], 100)
        self.assertEqual(rows[0]["total_stock_out"], 10)
        self.assertFalse(rows[0]["low_stock"])
