"""
======================================================
PATH: products/migrations/0001_initial.py
======================================================
MIGRATION: CREATE Product, ProductVariant, StockMovement

Purpose:
- Stock holders with ledger-managed stock_quantity + stock_version.
- Append-only stock movement ledger.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


MOVEMENT_TYPE_CHOICES = [
    ("INITIAL_STOCK", "Initial Stock"),
    ("STOCK_IN", "Stock In"),
    ("STOCK_OUT", "Stock Out"),
    ("ADJUSTMENT_IN", "Adjustment In"),
    ("ADJUSTMENT_OUT", "Adjustment Out"),
    ("ORDER_RESERVED", "Order Reservation"),
    ("ORDER_CANCELLED_RETURN", "Cancelled Order Return"),
    ("EXCEL_IMPORT", "Excel Import"),
    ("EXCEL_UPDATE", "Excel Update"),
    ("STOCK_COUNT", "Stock Count"),
]

REFERENCE_TYPE_CHOICES = [
    ("ORDER", "Order"),
    ("PRODUCT_INITIAL", "Product Initial Stock"),
    ("VARIANT_INITIAL", "Variant Initial Stock"),
    ("EXCEL", "Excel Batch"),
    ("STOCK_COUNT", "Stock Count"),
    ("MANUAL", "Manual Entry"),
]


def _stock_fields():
    return [
        (
            "stock_quantity",
            models.PositiveIntegerField(
                default=0,
                help_text="Current stock balance (ledger-managed only)",
            ),
        ),
        (
            "stock_version",
            models.PositiveIntegerField(
                default=0,
                help_text="Bumped on every stock write (lost-update detection)",
            ),
        ),
    ]


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                *_stock_fields(),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("code", models.CharField(db_index=True, max_length=64, unique=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("low_stock_threshold", models.PositiveIntegerField(default=10)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["code"], name="products_pr_code_4c2607_idx"),
                    models.Index(fields=["name"], name="products_pr_name_9ff0a3_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ProductVariant",
            fields=[
                *_stock_fields(),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("size", models.CharField(max_length=50)),
                ("sku", models.CharField(db_index=True, max_length=100, unique=True)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="products.product",
                    ),
                ),
            ],
            options={
                "ordering": ["product", "size"],
                "indexes": [
                    models.Index(fields=["product", "size"], name="products_pr_product_06fb37_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="StockMovement",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("movement_type", models.CharField(choices=MOVEMENT_TYPE_CHOICES, max_length=30)),
                ("quantity", models.PositiveIntegerField()),
                ("previous_stock", models.IntegerField()),
                ("new_stock", models.IntegerField()),
                (
                    "unit_cost",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        default=None,
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("batch_number", models.CharField(blank=True, default="", max_length=100)),
                ("expiry_date", models.DateField(blank=True, null=True)),
                (
                    "reference_type",
                    models.CharField(
                        blank=True,
                        choices=REFERENCE_TYPE_CHOICES,
                        max_length=30,
                        null=True,
                    ),
                ),
                ("reference_id", models.UUIDField(blank=True, null=True)),
                ("document_number", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "movement_date",
                    models.DateTimeField(db_index=True, default=django.utils.timezone.now),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("ACTIVE", "Active"), ("DELETED", "Deleted")],
                        default="ACTIVE",
                        max_length=10,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "performed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="stock_movements",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_movements",
                        to="products.product",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="stock_movements",
                        to="products.productvariant",
                    ),
                ),
            ],
            options={
                "ordering": ["-movement_date", "-created_at"],
                "indexes": [
                    models.Index(fields=["movement_type"], name="products_st_movemen_3c3c44_idx"),
                    models.Index(fields=["product", "movement_date"], name="products_st_product_b526cc_idx"),
                    models.Index(fields=["variant", "movement_date"], name="products_st_variant_b2ddc2_idx"),
                    models.Index(fields=["reference_type", "reference_id"], name="products_st_referen_03e101_idx"),
                    models.Index(fields=["status", "movement_date"], name="products_st_status_41db48_idx"),
                ],
            },
        ),
    ]
