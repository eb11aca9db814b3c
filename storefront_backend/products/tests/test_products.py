# products/tests/test_products.py

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from products.models import Product
from products.services.catalog_sync import sync_catalog, upsert_product


class FakeCatalogClient:
    def __init__(self, items):
        self.items = items

    def iter_products(self):
        yield from self.items


class ProductModelTests(TestCase):
    """
    Product model tests.

    GUARANTEES:
    - external_id is unique
    - Prices are never negative
    - regular_price prefers a valid sale price
    """

    def test_external_id_must_be_unique(self):
        Product.objects.create(external_id=1, name="Vitamin C", retail_price=Decimal("12.00"))

        with self.assertRaises((IntegrityError, ValidationError)):
            Product.objects.create(external_id=1, name="Vitamin C again", retail_price=Decimal("12.00"))

    def test_negative_price_rejected(self):
        with self.assertRaises(ValidationError):
            Product.objects.create(external_id=2, name="Iron", retail_price=Decimal("-1.00"))

    def test_regular_price(self):
        product = Product(external_id=3, name="B12", retail_price=Decimal("20.00"), sale_price=Decimal("15.00"))
        self.assertEqual(product.regular_price, Decimal("15.00"))

        product.sale_price = Decimal("25.00")
        self.assertEqual(product.regular_price, Decimal("20.00"))


class CatalogSyncTests(TestCase):
    """
    GUARANTEES:
    - Products are upserted by external_id
    - allow_markup survives a sync
    - Variant cost wins; non-positive costs become unknown
    - Products missing from the listing are deactivated
    """

    def _item(self, external_id, **extra):
        item = {
            "id": external_id,
            "name": f"Remote {external_id}",
            "sku": f"R-{external_id}",
            "price": "30.00",
            "cost_price": "12.00",
            "is_visible": True,
            "primary_image": {"url_standard": "https://cdn.example/img.jpg"},
        }
        item.update(extra)
        return item

    def test_sync_creates_updates_and_deactivates(self):
        stale = Product.objects.create(external_id=999, name="Old", retail_price=Decimal("5.00"))
        existing = Product.objects.create(
            external_id=10, name="Local name", retail_price=Decimal("1.00"), allow_markup=True
        )

        result = sync_catalog(FakeCatalogClient([self._item(10), self._item(11)]))

        self.assertEqual(result.as_dict(), {"created": 1, "updated": 1, "deactivated": 1, "skipped": 0})
        existing.refresh_from_db()
        self.assertEqual(existing.name, "Remote 10")
        self.assertEqual(existing.retail_price, Decimal("30.00"))
        self.assertTrue(existing.allow_markup)
        self.assertEqual(existing.image_url, "https://cdn.example/img.jpg")
        stale.refresh_from_db()
        self.assertFalse(stale.is_active)

    def test_variant_cost_and_unknown_cost(self):
        product, created = upsert_product(self._item(20, variants=[{"cost_price": "9.50"}]))
        self.assertTrue(created)
        self.assertEqual(product.cost_price, Decimal("9.50"))

        product, created = upsert_product(self._item(20, cost_price="0", variants=[]))
        self.assertFalse(created)
        self.assertIsNone(product.cost_price)

    def test_items_without_id_are_skipped(self):
        result = sync_catalog(FakeCatalogClient([{"name": "broken"}]), deactivate_missing=False)

        self.assertEqual(result.skipped, 1)
