# orders/tests/test_order_lifecycle.py

import uuid

from django.test import TestCase
from rest_framework.test import APIClient

from orders.models import Order, OrderItem
from orders.services.order_lifecycle import (
    InvalidOrderTransitionError,
    can_transition,
    cancel_order,
    place_order,
)
from products.models import StockMovement
from products.movement_rules import MovementType, ReferenceType
from products.services.exceptions import InsufficientStockError, OrderNotFoundError
from products.tests.factories import make_product, make_user


class OrderTransitionRuleTests(TestCase):
    def test_allowed_transitions(self):
        self.assertTrue(can_transition(from_status=Order.STATUS_PENDING, to_status=Order.STATUS_APPROVED))
        self.assertTrue(can_transition(from_status=Order.STATUS_APPROVED, to_status=Order.STATUS_CANCELLED))
        self.assertTrue(can_transition(from_status=Order.STATUS_SHIPPED, to_status=Order.STATUS_COMPLETED))

    def test_terminal_states_are_final(self):
        for status in (Order.STATUS_CANCELLED, Order.STATUS_COMPLETED, Order.STATUS_REJECTED):
            self.assertFalse(can_transition(from_status=status, to_status=Order.STATUS_APPROVED))

    def test_shipped_orders_cannot_be_cancelled(self):
        self.assertFalse(can_transition(from_status=Order.STATUS_SHIPPED, to_status=Order.STATUS_CANCELLED))


class OrderLifecycleTests(TestCase):
    """
    GUARANTEES:
    - Placing an order reserves stock for every line, or for none
    - Cancelling returns exactly what was reserved
    """

    def setUp(self):
        self.user = make_user(username="sales_rep", role="sales")
        self.dealer = make_user(username="dealer_one", role="dealer")
        self.product = make_product(stock=100)
        self.order = Order.objects.create(customer=self.dealer)
        OrderItem.objects.create(order=self.order, product=self.product, quantity=30)

    def test_order_number_is_generated(self):
        self.assertTrue(self.order.order_no.startswith("ORD"))

    def test_place_then_cancel(self):
        placed = place_order(self.order, user=self.user)

        self.assertEqual(placed.status, Order.STATUS_APPROVED)
        self.assertTrue(placed.stock_reserved)
        self.assertIsNotNone(placed.approved_at)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 70)

        cancelled = cancel_order(self.order, user=self.user)

        self.assertEqual(cancelled.status, Order.STATUS_CANCELLED)
        self.assertFalse(cancelled.stock_reserved)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 100)

        rows = list(
            StockMovement.objects.filter(
                reference_type=ReferenceType.ORDER, reference_id=self.order.pk
            ).order_by("movement_date", "created_at")
        )
        self.assertEqual(
            [(r.movement_type, r.previous_stock, r.new_stock, r.quantity) for r in rows],
            [
                (MovementType.ORDER_RESERVED, 100, 70, 30),
                (MovementType.ORDER_CANCELLED_RETURN, 70, 100, 30),
            ],
        )

    def test_cancel_pending_order_moves_no_stock(self):
        cancel_order(self.order)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 100)
        self.assertFalse(
            StockMovement.objects.filter(reference_type=ReferenceType.ORDER).exists()
        )

    def test_failed_reservation_leaves_order_pending(self):
        OrderItem.objects.create(order=self.order, product=self.product, quantity=71)

        with self.assertRaises(InsufficientStockError):
            place_order(self.order)

        self.order.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(self.order.status, Order.STATUS_PENDING)
        self.assertFalse(self.order.stock_reserved)
        self.assertEqual(self.product.stock_quantity, 100)

    def test_order_cannot_be_placed_twice(self):
        place_order(self.order)
        with self.assertRaises(InvalidOrderTransitionError):
            place_order(self.order)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 70)

    def test_cancelled_order_cannot_be_cancelled_again(self):
        place_order(self.order)
        cancel_order(self.order)
        with self.assertRaises(InvalidOrderTransitionError):
            cancel_order(self.order)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 100)

    def test_unknown_order(self):
        with self.assertRaises(OrderNotFoundError):
            place_order(uuid.uuid4())


class OrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.sales = make_user(username="sales_rep", role="sales")
        self.warehouse = make_user(username="warehouse_clerk", role="warehouse")
        self.dealer = make_user(username="dealer_one", role="dealer")

        self.product = make_product(stock=10)
        self.order = Order.objects.create(customer=self.dealer)
        OrderItem.objects.create(order=self.order, product=self.product, quantity=4)

    def test_list_orders(self):
        self.client.force_authenticate(self.warehouse)
        response = self.client.get("/api/orders/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["count"], 1)
        self.assertEqual(response.data["results"][0]["items"][0]["quantity"], 4)

    def test_place_and_cancel(self):
        self.client.force_authenticate(self.sales)

        placed = self.client.post(f"/api/orders/{self.order.pk}/place/")
        self.assertEqual(placed.status_code, 200)
        self.assertEqual(placed.data["status"], Order.STATUS_APPROVED)

        cancelled = self.client.post(f"/api/orders/{self.order.pk}/cancel/")
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.data["status"], Order.STATUS_CANCELLED)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 10)

    def test_place_without_stock_is_a_conflict(self):
        OrderItem.objects.create(order=self.order, product=self.product, quantity=7)
        self.client.force_authenticate(self.sales)

        response = self.client.post(f"/api/orders/{self.order.pk}/place/")
        self.assertEqual(response.status_code, 409)

    def test_invalid_transition_is_a_bad_request(self):
        self.client.force_authenticate(self.sales)
        self.client.post(f"/api/orders/{self.order.pk}/cancel/")

        response = self.client.post(f"/api/orders/{self.order.pk}/place/")
        self.assertEqual(response.status_code, 400)

    def test_warehouse_cannot_place_orders(self):
        self.client.force_authenticate(self.warehouse)
        response = self.client.post(f"/api/orders/{self.order.pk}/place/")
        self.assertEqual(response.status_code, 403)

    def test_dealer_cannot_list_orders(self):
        self.client.force_authenticate(self.dealer)
        response = self.client.get("/api/orders/")
        self.assertEqual(response.status_code, 403)
