from decimal import Decimal

from django.core.management.base import BaseCommand

from products.models import Product, ProductVariant
from products.services.ledger import assign_initial_stock


class Command(BaseCommand):
    help = "Seed demo products and variants with their initial stock (ledger-backed)"

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding products and stock..."))

        # -------------------------------
        # PRODUCTS (no variants)
        # -------------------------------
        products_data = [
            ("PUMP-100", "Water Pump 100W", 120, Decimal("45.00")),
            ("HOSE-20", "Garden Hose 20m", 300, Decimal("12.50")),
            ("VALVE-B", "Brass Ball Valve", 250, Decimal("6.80")),
        ]

        for code, name, qty, cost in products_data:
            product, created = Product.objects.get_or_create(code=code, defaults={"name": name})
            if created:
                assign_initial_stock(product=product, initial_stock=qty, unit_cost=cost)

        # -------------------------------
        # PRODUCT WITH SIZE VARIANTS
        # -------------------------------
        gloves, _ = Product.objects.get_or_create(code="GLOVE-W", defaults={"name": "Work Gloves"})

        for size, qty in (("S", 80), ("M", 150), ("L", 120)):
            sku = ProductVariant.generate_sku(gloves.code, size)
            variant, created = ProductVariant.objects.get_or_create(
                sku=sku,
                defaults={"product": gloves, "size": size},
            )
            if created:
                assign_initial_stock(
                    product=gloves,
                    variant=variant,
                    initial_stock=qty,
                    unit_cost=Decimal("2.40"),
                )

        self.stdout.write(self.style.SUCCESS("✅ Products and stock seeded successfully."))
