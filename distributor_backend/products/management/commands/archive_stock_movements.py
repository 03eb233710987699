# products/management/commands/archive_stock_movements.py

"""
ARCHIVE OLD STOCK MOVEMENTS (RETENTION)

Purpose:
- Soft-delete (status=DELETED) active movements older than the retention
  window. Quantities and balances are never touched.

Rules:
- Idempotent: rerunning is safe (only ACTIVE rows are considered).
- Supports --dry-run and --product for safe iteration.
"""

from __future__ import annotations

from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from products.models import Product
from products.services.ledger import archivable_movements, archive_movements


class Command(BaseCommand):
    help = "Archive (soft-delete) stock movements older than the retention window."

    def add_arguments(self, parser):
        parser.add_argument(
            "--days",
            type=int,
            default=None,
            help="Retention window in days (default: STOCK_MOVEMENT_RETENTION_DAYS).",
        )
        parser.add_argument(
            "--product",
            type=str,
            default="",
            help="Only archive movements of this product code.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show how many rows would be archived without saving.",
        )

    def handle(self, *args, **options):
        days = options.get("days")
        if days is None:
            days = int(getattr(settings, "STOCK_MOVEMENT_RETENTION_DAYS", 730))
        if days < 0:
            raise CommandError("--days must be a non-negative integer")

        product = None
        code = (options.get("product") or "").strip()
        if code:
            product = Product.objects.filter(code=code).first()
            if product is None:
                raise CommandError(f"Unknown product code: {code}")

        before = timezone.now() - timedelta(days=days)

        self.stdout.write(f"Archiving stock movements dated before {before:%Y-%m-%d %H:%M}...")

        if options.get("dry_run"):
            pending = archivable_movements(before=before, product=product).count()
            self.stdout.write(f"DRY RUN: {pending} movement(s) would be archived.")
            return

        archived = archive_movements(before=before, product=product)
        self.stdout.write(self.style.SUCCESS(f"Archived movements: {archived}"))
