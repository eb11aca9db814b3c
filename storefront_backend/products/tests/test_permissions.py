from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from commerce.exceptions import CommerceAPIError
from permissions.roles import ROLE_ADMIN, ROLE_SALES_REP
from products.models import Product

User = get_user_model()


class ProductPermissionTests(TestCase):
    """
    Permission & access tests.

    GUARANTEES:
    - Anyone can browse active, visible products
    - cost_price is only shown to callers with costs.view
    - Only pricing.manage may edit local policy fields
    """

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)

        self.product = Product.objects.create(
            external_id=300,
            name="Turmeric",
            sku="TUR-60",
            retail_price=Decimal("24.00"),
            cost_price=Decimal("8.00"),
        )
        self.hidden = Product.objects.create(
            external_id=301, name="Hidden", retail_price=Decimal("5.00"), is_visible=False
        )

    def test_anonymous_browse_hides_cost_and_hidden_products(self):
        res = self.client.get("/api/products/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertNotIn("cost_price", res.data["results"][0])

    def test_search(self):
        res = self.client.get("/api/products/", {"q": "tur"})

        self.assertEqual(res.data["count"], 1)

    def test_sales_rep_sees_cost(self):
        self.client.force_authenticate(self.rep)

        res = self.client.get(f"/api/products/{self.product.pk}/")

        self.assertEqual(res.data["cost_price"], "8.00")

    def test_customer_cannot_edit_product(self):
        self.client.force_authenticate(self.customer)

        res = self.client.patch(f"/api/products/{self.product.pk}/", {"allow_markup": True}, format="json")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_edits_policy_fields(self):
        self.client.force_authenticate(self.admin)

        res = self.client.patch(f"/api/products/{self.product.pk}/", {"allow_markup": True}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.product.refresh_from_db()
        self.assertTrue(self.product.allow_markup)

    def test_sync_failure_is_502(self):
        self.client.force_authenticate(self.admin)

        with mock.patch(
            "products.views.product.sync_catalog", side_effect=CommerceAPIError("BigCommerce HTTP 503: down")
        ):
            res = self.client.post("/api/products/sync/")

        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)
