# checkout/tests/test_checkout_api.py

from __future__ import annotations

from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from cart.services.cart import add_item
from checkout.models import CheckoutSession
from checkout.tests.test_checkout_service import BILLING, FakeCommerceClient
from commerce.exceptions import CommerceAPIError
from organizations.models import Organization
from products.models import Product
from users.models import CustomerAddress

User = get_user_model()


class CheckoutAPITests(TestCase):
    """
    GUARANTEES:
    - Sessions are created from the active cart or explicit items
    - Callers only ever see their own sessions
    - Retryable platform failures answer 502, terminal ones 409
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
            external_id=808,
            name="Probiotic 50B",
            sku="PRO-50",
            retail_price=Decimal("30.00"),
            cost_price=Decimal("11.00"),
        )

        patcher = mock.patch("checkout.services.checkout.time.sleep")
        self.sleep = patcher.start()
        self.addCleanup(patcher.stop)

    def _create(self, **payload):
        return self.client.post("/api/checkout/", payload, format="json")

    def _with_client(self, fake):
        return mock.patch("checkout.services.checkout.get_client", return_value=fake)

    def test_create_from_active_cart(self):
        add_item(self.user, product_id=self.product.pk, quantity=2)

        res = self._create()

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["subtotal"], "60.00")
        self.assertEqual(res.data["step"], CheckoutSession.STEP_CART_CREATION)

    def test_create_with_empty_cart_is_400(self):
        res = self._create()

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "EMPTY_CART")

    def test_repeated_idempotency_key_returns_200(self):
        payload = {"items": [{"product_id": str(self.product.pk), "quantity": 1}], "idempotency_key": "k-1"}

        first = self._create(**payload)
        second = self._create(**payload)

        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        self.assertEqual(second.status_code, status.HTTP_200_OK)
        self.assertEqual(first.data["id"], second.data["id"])

    def test_foreign_organization_is_403(self):
        org = Organization.objects.create(name="Not Mine")

        res = self._create(
            items=[{"product_id": str(self.product.pk), "quantity": 1}],
            organization_id=str(org.pk),
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_process_with_saved_address(self):
        address = CustomerAddress.objects.create(
            user=self.user,
            address_type=CustomerAddress.TYPE_BILLING,
            label="Home",
            first_name="Dana",
            last_name="Reyes",
            address1="1 Main St",
            city="Austin",
            state_or_province="Texas",
            postal_code="78701",
        )
        session_id = self._create(items=[{"product_id": str(self.product.pk), "quantity": 1}]).data["id"]

        with self._with_client(FakeCommerceClient()):
            res = self.client.post(
                f"/api/checkout/{session_id}/process/",
                {"billing_address_id": str(address.pk)},
                format="json",
            )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["checkout_id"], "cart-123")
        self.assertEqual(res.data["session"]["step"], CheckoutSession.STEP_PAYMENT)
        self.assertEqual(res.data["session"]["shipping_address"]["email"], "buyer@example.com")

    def test_retryable_cart_failure_is_502(self):
        session_id = self._create(items=[{"product_id": str(self.product.pk), "quantity": 1}]).data["id"]
        errors = [CommerceAPIError("BigCommerce HTTP 503: down", status=503) for _ in range(4)]

        with self._with_client(FakeCommerceClient(cart_errors=errors)):
            res = self.client.post(f"/api/checkout/{session_id}/cart/", format="json")

        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertTrue(res.data["can_retry"])
        self.assertEqual(res.data["session"]["status"], CheckoutSession.STATUS_FAILED)

    def test_full_flow_and_closed_session(self):
        session_id = self._create(items=[{"product_id": str(self.product.pk), "quantity": 1}]).data["id"]

        with self._with_client(FakeCommerceClient()):
            self.client.post(
                f"/api/checkout/{session_id}/process/", {"billing_address": BILLING}, format="json"
            )
        res = self.client.post(
            f"/api/checkout/{session_id}/complete/", {"external_order_id": "BC-77"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertIsNotNone(res.data["order_id"])
        self.assertEqual(res.data["session"]["order_id"], res.data["order_id"])

        res = self.client.post(f"/api/checkout/{session_id}/abandon/", format="json")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_complete_before_payment_is_409(self):
        session_id = self._create(items=[{"product_id": str(self.product.pk), "quantity": 1}]).data["id"]

        res = self.client.post(
            f"/api/checkout/{session_id}/complete/", {"external_order_id": "BC-1"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertFalse(res.data["success"])
        self.assertIsNone(res.data["order_id"])
        self.assertEqual(res.data["session"]["status"], CheckoutSession.STATUS_PENDING)

    def test_list_returns_active_sessions_only(self):
        item = [{"product_id": str(self.product.pk), "quantity": 1}]
        keep = self._create(items=item).data["id"]
        drop = self._create(items=item).data["id"]
        self.client.post(f"/api/checkout/{drop}/abandon/", format="json")

        res = self.client.get("/api/checkout/")

        ids = [row["id"] for row in res.data["results"]]
        self.assertEqual(ids, [keep])

    def test_other_users_session_is_404(self):
        session_id = self._create(items=[{"product_id": str(self.product.pk), "quantity": 1}]).data["id"]
        other = User.objects.create_user(email="other@example.com", password="pass12345")
        self.client.force_authenticate(other)

        self.assertEqual(self.client.get(f"/api/checkout/{session_id}/").status_code, status.HTTP_404_NOT_FOUND)
