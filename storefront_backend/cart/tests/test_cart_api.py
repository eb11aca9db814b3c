# cart/tests/test_cart_api.py

"""
CART TESTS

Run with:
    python manage.py test cart -v 2
"""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from cart.models import Cart
from organizations.models import Location, Organization, OrganizationMembership
from pricing.models import ContractPrice
from products.models import Product

User = get_user_model()


class CartAPITests(TestCase):
    """
    GUARANTEES:
    - One active cart per user
    - Adding an existing product increments quantity
    - Lines are re-priced when quantity crosses a tier
    - Context changes re-price every line and are membership-checked
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user = User.objects.create_user(
            email="buyer@example.com",
            password="pass12345",
            approval_status=User.APPROVAL_APPROVED,
        )
        self.client.force_authenticate(self.user)

        self.product = Product.objects.create(
            external_id=701,
            name="Vitamin D3",
            sku="VD3",
            retail_price=Decimal("20.00"),
            cost_price=Decimal("6.00"),
        )
        ContractPrice.objects.create(
            product=self.product,
            pricing_type=ContractPrice.TYPE_INDIVIDUAL,
            user=self.user,
            contract_price=Decimal("15.00"),
            min_quantity=10,
        )

        self.org = Organization.objects.create(name="Northside Health")
        self.location = Location.objects.create(organization=self.org, name="Clinic A")
        OrganizationMembership.objects.create(user=self.user, organization=self.org)

    def _add(self, quantity=1):
        return self.client.post(
            "/api/cart/items/add/",
            {"product_id": str(self.product.pk), "quantity": quantity},
            format="json",
        )

    def test_get_creates_single_active_cart(self):
        self.client.get("/api/cart/")
        self.client.get("/api/cart/")

        self.assertEqual(Cart.objects.filter(user=self.user, is_active=True).count(), 1)

    def test_add_increments_existing_line(self):
        self._add(2)
        res = self._add(3)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(res.data["items"][0]["quantity"], 5)
        self.assertEqual(res.data["item_count"], 5)

    def test_crossing_quantity_tier_reprices_line(self):
        res = self._add(9)
        self.assertEqual(res.data["items"][0]["unit_price"], "20.00")
        self.assertEqual(res.data["items"][0]["price_source"], "regular")

        item_id = res.data["items"][0]["id"]
        res = self.client.patch(f"/api/cart/items/{item_id}/update/", {"quantity": 10}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"][0]["unit_price"], "15.00")
        self.assertEqual(res.data["items"][0]["price_source"], "individual")
        self.assertEqual(res.data["subtotal_amount"], "150.00")

    def test_context_change_reprices(self):
        ContractPrice.objects.create(
            product=self.product,
            pricing_type=ContractPrice.TYPE_LOCATION,
            location=self.location,
            contract_price=Decimal("17.00"),
        )
        self._add(1)

        res = self.client.put(
            "/api/cart/context/",
            {"organization_id": str(self.org.pk), "location_id": str(self.location.pk)},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["location"], self.location.pk)
        self.assertEqual(res.data["items"][0]["unit_price"], "17.00")
        self.assertEqual(res.data["items"][0]["price_source"], "location")

    def test_foreign_context_is_forbidden(self):
        other = Organization.objects.create(name="Unrelated")

        res = self.client.put("/api/cart/context/", {"organization_id": str(other.pk)}, format="json")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(res.data["error"]["code"], "CONTEXT_FORBIDDEN")

    def test_remove_and_clear(self):
        res = self._add(1)
        item_id = res.data["items"][0]["id"]

        res = self.client.delete(f"/api/cart/items/{item_id}/remove/")
        self.assertEqual(res.data["items"], [])

        self._add(1)
        res = self.client.delete("/api/cart/clear/")
        self.assertEqual(res.data["subtotal_amount"], "0.00")

    def test_unknown_product_is_404(self):
        res = self.client.post(
            "/api/cart/items/add/",
            {"product_id": "00000000-0000-0000-0000-000000000000", "quantity": 1},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_anonymous_rejected(self):
        self.client.force_authenticate(None)

        self.assertEqual(self.client.get("/api/cart/").status_code, status.HTTP_401_UNAUTHORIZED)
