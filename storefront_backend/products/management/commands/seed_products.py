from decimal import Decimal

from django.core.management.base import BaseCommand
from django.utils import timezone

from products.models import Product

# (external_id, sku, name, retail, sale, cost, allow_markup)
DEMO_PRODUCTS = [
    (101, "OMEGA-3", "Omega-3 Fish Oil 1000mg", "34.00", None, "12.50", False),
    (102, "VIT-D3", "Vitamin D3 5000 IU", "19.00", "16.00", "5.25", False),
    (103, "MAG-GLY", "Magnesium Glycinate", "28.00", None, "9.10", False),
    (104, "PROBIO-50", "Probiotic 50 Billion", "49.00", None, "18.00", False),
    (113, "GENE-TEST", "Genetic Wellness Test Kit", "299.00", None, "140.00", True),
    (114, "MICRO-TEST", "Micronutrient Panel", "249.00", None, "110.00", True),
]


class Command(BaseCommand):
    help = "Seed a demo catalog for local development (no commerce credentials needed)."

    def handle(self, *args, **options):
        self.stdout.write(self.style.WARNING("Seeding demo catalog..."))
        now = timezone.now()
        created_count = 0

        for external_id, sku, name, retail, sale, cost, allow_markup in DEMO_PRODUCTS:
            _, created = Product.objects.update_or_create(
                external_id=external_id,
                defaults={
                    "sku": sku,
                    "name": name,
                    "retail_price": Decimal(retail),
                    "sale_price": Decimal(sale) if sale else None,
                    "cost_price": Decimal(cost),
                    "allow_markup": allow_markup,
                    "is_active": True,
                    "is_visible": True,
                    "last_synced_at": now,
                },
            )
            created_count += int(created)

        self.stdout.write(
            self.style.SUCCESS(f"Demo catalog ready ({created_count} new, {len(DEMO_PRODUCTS)} total).")
        )
