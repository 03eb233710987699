# products/tests/test_ledger.py

import uuid
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError, transaction
from django.test import TestCase, TransactionTestCase
from django.utils import timezone

from products.models import Product, StockMovement
from products.movement_rules import MovementType, ReferenceType, signed_delta
from products.services.exceptions import (
    InsufficientStockError,
    InvalidStockValueError,
    LedgerPersistenceError,
    MovementDirectionError,
    ProductNotFoundError,
    ReferenceNotFoundError,
    StockConflictError,
)
from products.services.ledger import (
    archive_movements,
    assign_initial_stock,
    commit_stock_level,
    lock_stock_holder,
    record_manual_movement,
    record_stock_change,
    to_stock_level,
)

from .factories import make_product, make_user, make_variant


class RecordStockChangeTests(TestCase):
    """
    Ledger writer tests.

    GUARANTEES:
    - Equal previous/new stock never creates a row
    - Rows agree with the movement rule table
    - Invalid references are rejected before anything is written
    """

    def setUp(self):
        self.user = make_user()
        self.product = make_product(stock=100, user=self.user)

    def test_equal_stock_is_a_noop(self):
        before = StockMovement.objects.count()
        with transaction.atomic():
            result = record_stock_change(
                product=self.product,
                previous_stock=100,
                new_stock=100,
                movement_type=MovementType.STOCK_IN,
            )
        self.assertIsNone(result)
        self.assertEqual(StockMovement.objects.count(), before)

    def test_row_carries_absolute_quantity(self):
        with transaction.atomic():
            movement = record_stock_change(
                product=self.product,
                previous_stock=100,
                new_stock=70,
                movement_type=MovementType.STOCK_OUT,
                reason="Damaged in transit",
                performed_by=self.user,
                reference_type=ReferenceType.MANUAL,
            )

        self.assertEqual(movement.quantity, 30)
        self.assertEqual(movement.previous_stock, 100)
        self.assertEqual(movement.new_stock, 70)
        self.assertEqual(movement.notes, "Damaged in transit")
        self.assertEqual(movement.performed_by, self.user)
        self.assertEqual(movement.status, StockMovement.Status.ACTIVE)

    def test_missing_stock_values_normalize_to_zero(self):
        product = make_product(code="NUT-M8", name="Hex Nut M8")
        with transaction.atomic():
            movement = record_stock_change(
                product=product,
                previous_stock=None,
                new_stock=12,
                movement_type=MovementType.STOCK_IN,
            )
        self.assertEqual(movement.previous_stock, 0)
        self.assertEqual(movement.quantity, 12)

    def test_direction_must_match_movement_type(self):
        before = StockMovement.objects.count()
        with self.assertRaises(MovementDirectionError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=100,
                    new_stock=70,
                    movement_type=MovementType.STOCK_IN,
                )
        self.assertEqual(StockMovement.objects.count(), before)

    def test_unknown_movement_type_is_rejected(self):
        with self.assertRaises(MovementDirectionError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=100,
                    new_stock=70,
                    movement_type="SHRINKAGE",
                )

    def test_negative_stock_values_are_rejected(self):
        with self.assertRaises(InvalidStockValueError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=5,
                    new_stock=-5,
                    movement_type=MovementType.STOCK_OUT,
                )

    def test_variant_must_belong_to_product(self):
        other = make_product(code="WASHER-10", name="Washer 10mm")
        variant = make_variant(other, size="10mm")
        with self.assertRaises(InvalidStockValueError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    variant=variant,
                    previous_stock=0,
                    new_stock=5,
                    movement_type=MovementType.STOCK_IN,
                )

    def test_order_reference_must_exist(self):
        with self.assertRaises(ReferenceNotFoundError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=100,
                    new_stock=90,
                    movement_type=MovementType.ORDER_RESERVED,
                    reference_type=ReferenceType.ORDER,
                    reference_id=uuid.uuid4(),
                )

    def test_manual_reference_carries_no_id(self):
        with self.assertRaises(InvalidStockValueError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=100,
                    new_stock=110,
                    movement_type=MovementType.STOCK_IN,
                    reference_type=ReferenceType.MANUAL,
                    reference_id=uuid.uuid4(),
                )

    def test_reference_id_requires_reference_type(self):
        with self.assertRaises(InvalidStockValueError):
            with transaction.atomic():
                record_stock_change(
                    product=self.product,
                    previous_stock=100,
                    new_stock=110,
                    movement_type=MovementType.STOCK_IN,
                    reference_id=self.product.pk,
                )


class WriterRequiresTransactionTests(TransactionTestCase):
    def test_writer_refuses_to_run_outside_atomic(self):
        product = Product.objects.create(code="PIN-4", name="Cotter Pin 4mm")
        with self.assertRaises(transaction.TransactionManagementError):
            record_stock_change(
                product=product,
                previous_stock=0,
                new_stock=10,
                movement_type=MovementType.STOCK_IN,
            )
        self.assertFalse(StockMovement.objects.exists())


class AggregateCommitTests(TestCase):
    def setUp(self):
        self.product = make_product(stock=40)

    def test_commit_bumps_version(self):
        with transaction.atomic():
            holder = lock_stock_holder(self.product)
            version = holder.stock_version
            commit_stock_level(holder, version, 55)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 55)
        self.assertEqual(self.product.stock_version, version + 1)

    def test_stale_version_is_a_conflict(self):
        with transaction.atomic():
            holder = lock_stock_holder(self.product)
            stale = holder.stock_version
            commit_stock_level(holder, stale, 45)

            with self.assertRaises(StockConflictError):
                commit_stock_level(holder, stale, 50)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 45)

    def test_unknown_holder(self):
        with self.assertRaises(ProductNotFoundError):
            with transaction.atomic():
                lock_stock_holder(uuid.uuid4())

    def test_malformed_holder_id(self):
        with self.assertRaises(ProductNotFoundError):
            with transaction.atomic():
                lock_stock_holder("not-a-uuid")

    def test_variant_of_another_product(self):
        other = make_product(code="WASHER-10", name="Washer 10mm")
        variant = make_variant(other, size="10mm")
        with self.assertRaises(ProductNotFoundError):
            with transaction.atomic():
                lock_stock_holder(self.product, variant)

    def test_to_stock_level(self):
        self.assertEqual(to_stock_level(None), 0)
        self.assertEqual(to_stock_level(""), 0)
        self.assertEqual(to_stock_level("12"), 12)
        for bad in (-1, "abc", True):
            with self.assertRaises(InvalidStockValueError):
                to_stock_level(bad)


class InitialStockTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.product = make_product()

    def test_initial_stock_records_opening_balance(self):
        movement = assign_initial_stock(
            product=self.product,
            initial_stock=100,
            user=self.user,
            unit_cost=Decimal("4.00"),
            batch_number="LOT-1",
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 100)
        self.assertEqual(movement.movement_type, MovementType.INITIAL_STOCK)
        self.assertEqual(movement.reference_type, ReferenceType.PRODUCT_INITIAL)
        self.assertEqual(movement.reference_id, self.product.pk)
        self.assertEqual(movement.total_cost, Decimal("400.00"))

    def test_variant_initial_stock_uses_variant_reference(self):
        variant = make_variant(self.product)
        movement = assign_initial_stock(product=self.product, variant=variant, initial_stock=25)

        variant.refresh_from_db()
        self.product.refresh_from_db()
        self.assertEqual(variant.stock_quantity, 25)
        self.assertEqual(self.product.stock_quantity, 0)
        self.assertEqual(movement.reference_type, ReferenceType.VARIANT_INITIAL)
        self.assertEqual(movement.reference_id, variant.pk)

    def test_zero_initial_stock_writes_nothing(self):
        self.assertIsNone(assign_initial_stock(product=self.product, initial_stock=0))
        self.assertFalse(StockMovement.objects.exists())

    def test_initial_stock_only_once(self):
        assign_initial_stock(product=self.product, initial_stock=10)
        with self.assertRaises(InvalidStockValueError):
            assign_initial_stock(product=self.product, initial_stock=10)


class ManualMovementTests(TestCase):
    def setUp(self):
        self.user = make_user()
        self.product = make_product(stock=20, user=self.user)

    def test_stock_in(self):
        movement = record_manual_movement(
            product=self.product.pk,
            movement_type=MovementType.STOCK_IN,
            quantity=15,
            user=self.user,
            unit_cost=Decimal("3.00"),
            document_number="GRN-0042",
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 35)
        self.assertEqual(movement.reference_type, ReferenceType.MANUAL)
        self.assertIsNone(movement.reference_id)
        self.assertEqual(movement.document_number, "GRN-0042")

    def test_stock_out_beyond_balance_is_rejected(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            record_manual_movement(
                product=self.product,
                movement_type=MovementType.STOCK_OUT,
                quantity=21,
                user=self.user,
            )

        self.assertEqual(ctx.exception.available, 20)
        self.assertEqual(ctx.exception.requested, 21)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 20)

    def test_order_types_are_not_manual(self):
        with self.assertRaises(InvalidStockValueError):
            record_manual_movement(
                product=self.product,
                movement_type=MovementType.ORDER_RESERVED,
                quantity=1,
            )

    def test_zero_quantity_is_rejected(self):
        with self.assertRaises(InvalidStockValueError):
            record_manual_movement(
                product=self.product,
                movement_type=MovementType.STOCK_IN,
                quantity=0,
            )

    def test_persistence_failure_rolls_back_the_aggregate(self):
        with mock.patch.object(
            StockMovement.objects, "create", side_effect=DatabaseError("disk full")
        ):
            with self.assertRaises(LedgerPersistenceError):
                record_manual_movement(
                    product=self.product,
                    movement_type=MovementType.STOCK_IN,
                    quantity=5,
                )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 20)
        self.assertEqual(StockMovement.objects.filter(product=self.product).count(), 1)

    def test_history_explains_current_stock(self):
        record_manual_movement(product=self.product, movement_type=MovementType.STOCK_IN, quantity=30)
        record_manual_movement(product=self.product, movement_type=MovementType.STOCK_OUT, quantity=12)
        record_manual_movement(product=self.product, movement_type=MovementType.ADJUSTMENT_OUT, quantity=3)

        self.product.refresh_from_db()
        total = 0
        for movement in StockMovement.objects.filter(product=self.product):
            delta = signed_delta(
                movement.movement_type,
                movement.quantity,
                previous_stock=movement.previous_stock,
                new_stock=movement.new_stock,
            )
            self.assertEqual(movement.new_stock - movement.previous_stock, delta)
            total += delta

        self.assertEqual(total, self.product.stock_quantity)
        self.assertEqual(self.product.stock_quantity, 35)


class ArchiveMovementTests(TestCase):
    def setUp(self):
        self.product = make_product(stock=10)
        record_manual_movement(product=self.product, movement_type=MovementType.STOCK_IN, quantity=5)

    def test_archive_only_changes_status(self):
        archived = archive_movements(before=timezone.now() + timedelta(days=1))

        self.assertEqual(archived, 2)
        rows = StockMovement.objects.filter(product=self.product)
        self.assertTrue(all(r.status == StockMovement.Status.DELETED for r in rows))
        self.assertEqual(sorted(r.quantity for r in rows), [5, 10])

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_quantity, 15)

    def test_recent_rows_are_kept(self):
        archived = archive_movements(before=timezone.now() - timedelta(days=1))
        self.assertEqual(archived, 0)
