# checkout/tests/test_checkout_service.py

"""
CHECKOUT SESSION TESTS

Run with:
    python manage.py test checkout -v 2
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase, override_settings
from django.utils import timezone

from cart.models import Cart
from cart.services.cart import add_item
from checkout.models import CheckoutSession
from checkout.services import checkout as checkout_service
from checkout.services.checkout import (
    EmptyCheckoutError,
    IdempotencyConflictError,
    complete_checkout,
    create_cart_with_retry,
    create_session,
    expire_stale_sessions,
    is_retryable,
    process_checkout,
    recover_session,
)
from commerce.exceptions import CommerceAPIError
from commissions.models import Commission, OrganizationSalesRep
from organizations.models import Organization, OrganizationMembership
from orders.models import Order
from permissions.roles import ROLE_SALES_REP
from pricing.models import ContractPrice
from products.models import Product

User = get_user_model()

CHECKOUT_SETTINGS = {
    "TAX_RATE": "0.08",
    "CURRENCY": "USD",
    "SESSION_TTL_HOURS": 24,
    "MAX_RETRIES": 3,
    "RETRY_BASE_DELAY": 1.0,
}

BILLING = {
    "first_name": "Dana",
    "last_name": "Reyes",
    "email": "buyer@example.com",
    "address1": "1 Main St",
    "city": "Austin",
    "state_or_province": "Texas",
    "postal_code": "78701",
    "country_code": "US",
}


# -----------------------------
# helpers
# -----------------------------


class FakeCommerceClient:
    """Stands in for the BigCommerce client; queued errors are raised first."""

    def __init__(self, *, cart_errors=(), checkout_errors=()):
        self.cart_errors = list(cart_errors)
        self.checkout_errors = list(checkout_errors)
        self.calls = []

    def create_cart(self, line_items):
        self.calls.append(("create_cart", line_items))
        if self.cart_errors:
            raise self.cart_errors.pop(0)
        return {"id": "cart-123", "redirect_urls": {"checkout_url": "https://store.example/checkout"}}

    def create_checkout(self, cart_id, billing, shipping):
        self.calls.append(("create_checkout", cart_id))
        if self.checkout_errors:
            raise self.checkout_errors.pop(0)
        return {"id": cart_id, "checkout": {}}

    def create_order(self, checkout_id):
        self.calls.append(("create_order", checkout_id))
        return {"id": 9001}


def _product(external_id=111, retail="50.00", cost="20.00"):
    return Product.objects.create(
        external_id=external_id,
        name=f"Product {external_id}",
        sku=f"SKU-{external_id}",
        retail_price=Decimal(retail),
        cost_price=Decimal(cost),
    )


@override_settings(CHECKOUT=CHECKOUT_SETTINGS)
class CheckoutServiceTestBase(TestCase):
    def setUp(self):
        cache.clear()
        self.user = User.objects.create_user(
            email="buyer@example.com",
            password="pass12345",
            approval_status=User.APPROVAL_APPROVED,
        )
        self.product = _product()
        self.sleep = mock.Mock()

    def _session(self, quantity=2, **kwargs):
        session, _ = create_session(self.user, items=[(self.product, quantity)], **kwargs)
        return session


class CreateSessionTests(CheckoutServiceTestBase):
    """
    GUARANTEES:
    - Lines are priced server-side with the caller's contract price
    - Tax and totals are derived from the priced snapshot
    - Idempotency keys return the original session
    """

    def test_snapshot_uses_contract_price(self):
        ContractPrice.objects.create(
            product=self.product,
            pricing_type=ContractPrice.TYPE_INDIVIDUAL,
            user=self.user,
            contract_price=Decimal("40.00"),
        )

        session = self._session(quantity=3)

        line = session.cart_items[0]
        self.assertEqual(line["price"], "40.00")
        self.assertEqual(line["retail_price"], "50.00")
        self.assertEqual(line["source"], "individual")
        self.assertEqual(line["external_id"], 111)
        self.assertEqual(session.subtotal, Decimal("120.00"))
        self.assertEqual(session.tax, Decimal("9.60"))
        self.assertEqual(session.total, Decimal("129.60"))
        self.assertEqual(session.status, CheckoutSession.STATUS_PENDING)
        self.assertEqual(session.step, CheckoutSession.STEP_CART_CREATION)
        self.assertGreater(session.expires_at, timezone.now() + timedelta(hours=23))

    def test_session_from_cart(self):
        add_item(self.user, product_id=self.product.pk, quantity=4)
        cart = Cart.objects.get(user=self.user, is_active=True)

        session, created = create_session(self.user, cart=cart)

        self.assertTrue(created)
        self.assertEqual(session.cart_items[0]["quantity"], 4)

    def test_empty_checkout_rejected(self):
        cart = Cart.objects.create(user=self.user)

        with self.assertRaises(EmptyCheckoutError):
            create_session(self.user, cart=cart)

    def test_idempotency_key_returns_existing_session(self):
        first = self._session(idempotency_key="order-abc")
        second, created = create_session(self.user, items=[(self.product, 9)], idempotency_key="order-abc")

        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(CheckoutSession.objects.count(), 1)

    def test_idempotency_key_of_other_user_conflicts(self):
        self._session(idempotency_key="order-abc")
        other = User.objects.create_user(email="other@example.com", password="pass12345")

        with self.assertRaises(IdempotencyConflictError):
            create_session(other, items=[(self.product, 1)], idempotency_key="order-abc")

    def test_concurrent_insert_with_same_key_returns_winner(self):
        winner = self._session(idempotency_key="order-race")
        real_lookup = checkout_service._session_for_key
        calls = []

        def lookup_misses_first(user, key):
            calls.append(key)
            if len(calls) == 1:
                return None
            return real_lookup(user, key)

        with mock.patch.object(checkout_service, "_session_for_key", side_effect=lookup_misses_first):
            session, created = create_session(self.user, items=[(self.product, 1)], idempotency_key="order-race")

        self.assertFalse(created)
        self.assertEqual(session.pk, winner.pk)
        self.assertEqual(len(calls), 2)
        self.assertEqual(CheckoutSession.objects.filter(idempotency_key="order-race").count(), 1)


class RetryPolicyTests(CheckoutServiceTestBase):
    """
    GUARANTEES:
    - Transient errors are retried with exponential backoff
    - Non-transient errors stop immediately
    - Every failure lands in error_log; exhaustion marks the session failed
    """

    def test_retryable_classification(self):
        self.assertTrue(is_retryable("BigCommerce HTTP 503: unavailable"))
        self.assertTrue(is_retryable("connect ETIMEDOUT"))
        self.assertTrue(is_retryable("Rate limit exceeded"))
        self.assertTrue(is_retryable("Network unreachable"))
        self.assertFalse(is_retryable("BigCommerce HTTP 422: invalid product"))

    def test_status_decides_before_message(self):
        self.assertTrue(is_retryable(CommerceAPIError("BigCommerce HTTP 429: slow down", status=429)))
        self.assertTrue(is_retryable(CommerceAPIError("BigCommerce returned non-JSON (502): <html>", status=502)))
        self.assertFalse(
            is_retryable(CommerceAPIError("BigCommerce HTTP 422: Product 15030 does not exist", status=422))
        )
        self.assertFalse(is_retryable(CommerceAPIError("BigCommerce HTTP 400: network field invalid", status=400)))

    def test_status_codes_inside_other_numbers_are_not_retried(self):
        self.assertFalse(is_retryable("BigCommerce HTTP 422: Product 15030 does not exist"))
        self.assertFalse(is_retryable("Variant 5021 is out of stock"))
        self.assertTrue(is_retryable("BigCommerce HTTP 504: gateway"))
        self.assertTrue(is_retryable("BigCommerce request timeout"))

    def test_permanent_error_mentioning_503_is_not_retried(self):
        session = self._session()
        error = CommerceAPIError("BigCommerce HTTP 422: Product 15030 does not exist", status=422)
        client = FakeCommerceClient(cart_errors=[error])

        result = create_cart_with_retry(session, client=client, sleep=self.sleep)

        self.assertFalse(result.can_retry)
        self.assertEqual(len(client.calls), 1)
        self.sleep.assert_not_called()

    def test_transient_error_then_success(self):
        session = self._session()
        client = FakeCommerceClient(cart_errors=[CommerceAPIError("BigCommerce HTTP 503: busy", status=503)])

        result = create_cart_with_retry(session, client=client, sleep=self.sleep)

        self.assertTrue(result.success)
        self.assertEqual(result.cart_id, "cart-123")
        session.refresh_from_db()
        self.assertEqual(session.step, CheckoutSession.STEP_ADDRESS_ENTRY)
        self.assertEqual(session.retry_count, 1)
        self.assertEqual(len(session.error_log), 1)
        self.assertTrue(session.error_log[0]["retryable"])
        self.assertEqual(session.metadata["redirect_urls"]["checkout_url"], "https://store.example/checkout")
        self.sleep.assert_called_once_with(1.0)

        line_items = client.calls[0][1]
        self.assertEqual(line_items, [{"product_id": 111, "quantity": 2, "list_price": "50.00"}])

    def test_non_retryable_error_stops_immediately(self):
        session = self._session()
        client = FakeCommerceClient(cart_errors=[CommerceAPIError("BigCommerce HTTP 422: bad product", status=422)])

        result = create_cart_with_retry(session, client=client, sleep=self.sleep)

        self.assertFalse(result.success)
        self.assertFalse(result.can_retry)
        self.assertEqual(len(client.calls), 1)
        self.sleep.assert_not_called()
        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_FAILED)
        self.assertIn("422", session.last_error)

    def test_retries_exhausted(self):
        session = self._session()
        errors = [CommerceAPIError("BigCommerce HTTP 502: bad gateway", status=502) for _ in range(4)]
        client = FakeCommerceClient(cart_errors=errors)

        result = create_cart_with_retry(session, client=client, sleep=self.sleep)

        self.assertFalse(result.success)
        self.assertTrue(result.can_retry)
        self.assertEqual(len(client.calls), 4)
        self.assertEqual([c.args[0] for c in self.sleep.call_args_list], [1.0, 2.0, 4.0])
        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_FAILED)
        self.assertEqual(session.retry_count, 3)
        self.assertEqual(len(session.error_log), 4)


class CheckoutFlowTests(CheckoutServiceTestBase):
    """
    GUARANTEES:
    - process_checkout creates the cart when missing, then the checkout
    - complete_checkout creates exactly one order and closes the cart
    - completing records the sales rep commission
    """

    def setUp(self):
        super().setUp()
        self.client_stub = FakeCommerceClient()

    def _processed_session(self, **kwargs):
        session = self._session(**kwargs)
        process_checkout(
            session,
            billing_address=BILLING,
            shipping_address=BILLING,
            client=self.client_stub,
            sleep=self.sleep,
        )
        session.refresh_from_db()
        return session

    def test_process_creates_cart_and_checkout(self):
        session = self._processed_session()

        self.assertEqual(session.cart_id, "cart-123")
        self.assertEqual(session.checkout_id, "cart-123")
        self.assertEqual(session.step, CheckoutSession.STEP_PAYMENT)
        self.assertEqual(session.billing_address["city"], "Austin")
        self.assertEqual([c[0] for c in self.client_stub.calls], ["create_cart", "create_checkout"])

    def test_complete_creates_single_order(self):
        add_item(self.user, product_id=self.product.pk, quantity=2)
        session = self._processed_session()

        first = complete_checkout(session, external_order_id="BC-100")
        second = complete_checkout(session, external_order_id="BC-100")

        self.assertTrue(first.success)
        self.assertEqual(first.order_id, second.order_id)
        self.assertEqual(Order.objects.count(), 1)

        order = Order.objects.get()
        self.assertEqual(order.external_order_id, "BC-100")
        self.assertEqual(order.total, Decimal("108.00"))
        self.assertEqual(order.items.get().unit_cost, Decimal("20.00"))

        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_COMPLETED)
        self.assertEqual(session.step, CheckoutSession.STEP_CONFIRMATION)
        self.assertFalse(Cart.objects.filter(user=self.user, is_active=True).exists())

    def test_offline_completion_places_platform_order(self):
        session = self._processed_session(payment_method=CheckoutSession.PAYMENT_OFFLINE)

        result = complete_checkout(session, client=self.client_stub, sleep=self.sleep)

        self.assertTrue(result.success)
        self.assertEqual(Order.objects.get().external_order_id, "9001")

    def test_complete_without_checkout_fails(self):
        session = self._session()

        result = complete_checkout(session, client=self.client_stub, sleep=self.sleep)

        self.assertFalse(result.success)
        self.assertFalse(result.can_retry)
        self.assertEqual(result.error, "No checkout ID found")

    def test_external_order_id_cannot_skip_payment_step(self):
        session = self._session()

        result = complete_checkout(session, external_order_id="BC-FORGED")

        self.assertFalse(result.success)
        self.assertFalse(result.can_retry)
        self.assertFalse(Order.objects.exists())
        self.assertFalse(Commission.objects.exists())
        session.refresh_from_db()
        self.assertEqual(session.step, CheckoutSession.STEP_CART_CREATION)
        self.assertNotEqual(session.status, CheckoutSession.STATUS_COMPLETED)

    def test_cart_stage_session_cannot_complete(self):
        session = self._session()
        session.cart_id = "cart-123"
        session.checkout_id = "cart-123"
        session.step = CheckoutSession.STEP_ADDRESS_ENTRY
        session.save()

        result = complete_checkout(session, external_order_id="BC-101")

        self.assertFalse(result.success)
        self.assertIn("address_entry", result.error)
        self.assertFalse(Order.objects.exists())

    def test_expired_session_cannot_complete(self):
        session = self._processed_session()
        session.expires_at = timezone.now() - timedelta(minutes=1)
        session.save()

        result = complete_checkout(session, external_order_id="BC-102")

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Session expired")
        self.assertFalse(Order.objects.exists())
        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_ABANDONED)

    def test_completion_records_commission(self):
        org = Organization.objects.create(name="Lakeside Clinic")
        OrganizationMembership.objects.create(user=self.user, organization=org)
        rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        OrganizationSalesRep.objects.create(organization=org, sales_rep=rep, commission_rate=Decimal("5.00"))

        session = self._processed_session(organization=org)
        result = complete_checkout(session, external_order_id="BC-200")

        order = Order.objects.get(pk=result.order_id)
        self.assertEqual(order.sales_rep, rep)

        commission = Commission.objects.get(order=order)
        # margin (50 - 20) * 2 = 60, 5% = 3.00
        self.assertEqual(commission.total_margin, Decimal("60.00"))
        self.assertEqual(commission.sales_rep_commission, Decimal("3.00"))
        self.assertEqual(commission.status, Commission.STATUS_PENDING)


class RecoveryTests(CheckoutServiceTestBase):
    """
    GUARANTEES:
    - Expired sessions are abandoned, not resumed
    - Recovery resumes from the last reached step
    - Stale sessions are swept to abandoned
    """

    def test_expired_session_is_abandoned(self):
        session = self._session()
        session.expires_at = timezone.now() - timedelta(minutes=1)
        session.save()

        result = recover_session(session, client=FakeCommerceClient(), sleep=self.sleep)

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Session expired")
        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_ABANDONED)

    def test_recover_from_cart_creation_creates_cart(self):
        session = self._session()

        result = recover_session(session, client=FakeCommerceClient(), sleep=self.sleep)

        self.assertTrue(result.success)
        self.assertEqual(result.cart_id, "cart-123")

    def test_recover_failed_checkout_step_keeps_cart(self):
        session = self._session()
        session.cart_id = "cart-123"
        session.step = CheckoutSession.STEP_ADDRESS_ENTRY
        session.status = CheckoutSession.STATUS_FAILED
        session.save()

        result = recover_session(session, client=FakeCommerceClient(), sleep=self.sleep)

        self.assertTrue(result.success)
        self.assertEqual(result.cart_id, "cart-123")
        session.refresh_from_db()
        self.assertEqual(session.status, CheckoutSession.STATUS_PROCESSING)

    def test_recover_without_cart_id_is_retryable_failure(self):
        session = self._session()
        session.step = CheckoutSession.STEP_PAYMENT
        session.save()

        result = recover_session(session, client=FakeCommerceClient(), sleep=self.sleep)

        self.assertFalse(result.success)
        self.assertTrue(result.can_retry)

    def test_expire_stale_sessions(self):
        stale = self._session()
        stale.expires_at = timezone.now() - timedelta(hours=1)
        stale.save()
        fresh = self._session()

        self.assertEqual(expire_stale_sessions(), 1)

        stale.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stale.status, CheckoutSession.STATUS_ABANDONED)
        self.assertIsNotNone(stale.abandoned_at)
        self.assertEqual(fresh.status, CheckoutSession.STATUS_PENDING)
