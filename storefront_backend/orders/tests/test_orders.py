# orders/tests/test_orders.py

"""
ORDER TESTS

Run with:
    python manage.py test orders -v 2
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APIClient

from commissions.models import Commission, OrganizationSalesRep
from organizations.models import Organization, OrganizationMembership
from orders.models import Order
from orders.services.lifecycle import InvalidOrderTransitionError, can_transition
from orders.services.orders import create_order_from_lines, transition_order, visible_orders
from permissions.roles import ROLE_ADMIN, ROLE_SALES_REP

User = get_user_model()


# -----------------------------
# helpers
# -----------------------------


def _line(price="30.00", cost="10.00", quantity=2, markup="0.00"):
    return {
        "product_id": None,
        "external_id": 42,
        "name": "Ashwagandha",
        "quantity": quantity,
        "price": price,
        "retail_price": "35.00",
        "cost": cost,
        "markup": markup,
        "source": "organization",
    }


class OrderLifecycleTests(TestCase):
    """
    GUARANTEES:
    - Only whitelisted transitions are allowed
    - Transitions stamp their timestamp once
    - Completing records the commission, cancelling cancels it
    """

    def setUp(self):
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.org = Organization.objects.create(name="Pine Clinic")
        OrganizationMembership.objects.create(user=self.customer, organization=self.org)
        OrganizationSalesRep.objects.create(organization=self.org, sales_rep=self.rep)

        self.order = create_order_from_lines(self.customer, [_line()], organization=self.org)

    def test_transition_table(self):
        self.assertTrue(can_transition(from_status="pending", to_status="completed"))
        self.assertTrue(can_transition(from_status="shipped", to_status="delivered"))
        self.assertFalse(can_transition(from_status="delivered", to_status="cancelled"))
        self.assertFalse(can_transition(from_status="pending", to_status="shipped"))

    def test_pending_order_picks_up_sales_rep(self):
        self.assertEqual(self.order.sales_rep, self.rep)
        self.assertEqual(self.order.status, Order.STATUS_PENDING)
        self.assertTrue(self.order.order_no.startswith("ORD"))

    def test_complete_records_commission(self):
        order = transition_order(self.order, Order.STATUS_COMPLETED)

        self.assertIsNotNone(order.completed_at)
        commission = Commission.objects.get(order=order)
        # (30 - 10) * 2 = 40 margin at the default 5%
        self.assertEqual(commission.total_margin, Decimal("40.00"))
        self.assertEqual(commission.commission_amount, Decimal("2.00"))

    def test_cancel_cancels_commission(self):
        order = transition_order(self.order, Order.STATUS_COMPLETED)
        order = transition_order(order, Order.STATUS_CANCELLED)

        self.assertIsNotNone(order.cancelled_at)
        self.assertEqual(Commission.objects.get(order=order).status, Commission.STATUS_CANCELLED)

    def test_invalid_transition_raises(self):
        with self.assertRaises(InvalidOrderTransitionError):
            transition_order(self.order, Order.STATUS_DELIVERED)

    def test_visibility(self):
        stranger = User.objects.create_user(email="stranger@example.com", password="pass12345")
        colleague = User.objects.create_user(email="colleague@example.com", password="pass12345")
        OrganizationMembership.objects.create(user=colleague, organization=self.org)

        self.assertIn(self.order, visible_orders(self.customer))
        self.assertIn(self.order, visible_orders(colleague))
        self.assertIn(self.order, visible_orders(self.rep))
        self.assertNotIn(self.order, visible_orders(stranger))


class OrderAPITests(TestCase):
    """
    GUARANTEES:
    - Customers read their own orders without cost data
    - Status changes need orders.manage
    - Shipment tracking moves a completed order to shipped
    """

    def setUp(self):
        self.client = APIClient()
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        self.order = create_order_from_lines(self.customer, [_line()])

    def test_customer_lists_own_orders_without_costs(self):
        self.client.force_authenticate(self.customer)

        res = self.client.get("/api/orders/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 1)
        self.assertNotIn("unit_cost", res.data["results"][0]["items"][0])

    def test_admin_sees_costs(self):
        self.client.force_authenticate(self.admin)

        res = self.client.get(f"/api/orders/{self.order.pk}/")

        self.assertEqual(res.data["items"][0]["unit_cost"], "10.00")

    def test_customer_cannot_change_status(self):
        self.client.force_authenticate(self.customer)

        res = self.client.post(f"/api/orders/{self.order.pk}/status/", {"status": "completed"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_status_and_shipment(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(f"/api/orders/{self.order.pk}/status/", {"status": "completed"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)

        res = self.client.post(
            f"/api/orders/{self.order.pk}/shipment/",
            {"tracking_number": "1Z999", "carrier": "UPS"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], "shipped")
        self.assertEqual(res.data["tracking_number"], "1Z999")

    def test_invalid_transition_is_409(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(f"/api/orders/{self.order.pk}/status/", {"status": "delivered"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_mark_viewed(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(f"/api/orders/{self.order.pk}/mark-viewed/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.order.refresh_from_db()
        self.assertIsNotNone(self.order.viewed_at)


class ProfitReportTests(TestCase):
    """
    GUARANTEES:
    - Revenue is the merchandise subtotal; cost comes from line snapshots
    - The summary margin is weighted by revenue
    - Cancelled orders drop out unless asked for
    - Only costs.view callers can read it
    """

    url = "/api/orders/profit-report/"

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.org = Organization.objects.create(name="Fir Clinic")

        # 60.00 revenue, 20.00 cost
        self.first = create_order_from_lines(
            self.customer, [_line()], organization=self.org, tax=Decimal("5.00"), shipping=Decimal("7.00")
        )
        # 40.00 revenue, 30.00 cost
        self.second = create_order_from_lines(
            self.customer, [_line(price="20.00", cost="15.00")], organization=self.org
        )
        self.client.force_authenticate(self.admin)

    def test_summary_and_rows(self):
        res = self.client.get(self.url)

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        summary = res.data["summary"]
        self.assertEqual(summary["order_count"], 2)
        self.assertEqual(summary["total_revenue"], "100.00")
        self.assertEqual(summary["total_cost"], "50.00")
        self.assertEqual(summary["total_profit"], "50.00")
        self.assertEqual(summary["average_margin"], "50.00")

        rows = {row["order_id"]: row for row in res.data["orders"]}
        first = rows[str(self.first.pk)]
        self.assertEqual(first["revenue"], "60.00")
        self.assertEqual(first["gross_profit"], "40.00")
        self.assertEqual(first["profit_margin"], "66.67")

    def test_cancelled_orders_are_excluded_by_default(self):
        transition_order(self.second, Order.STATUS_CANCELLED)

        default = self.client.get(self.url)
        cancelled = self.client.get(self.url, {"status": Order.STATUS_CANCELLED})

        self.assertEqual(default.data["summary"]["order_count"], 1)
        self.assertEqual(cancelled.data["summary"]["order_count"], 1)
        self.assertEqual(cancelled.data["orders"][0]["order_id"], str(self.second.pk))

    def test_missing_cost_counts_as_zero(self):
        create_order_from_lines(self.customer, [_line(price="10.00", cost=None, quantity=1)])

        summary = self.client.get(self.url).data["summary"]

        self.assertEqual(summary["items_missing_cost"], 1)
        self.assertEqual(summary["total_revenue"], "110.00")
        self.assertEqual(summary["total_cost"], "50.00")

    def test_date_filter(self):
        Order.objects.filter(pk=self.first.pk).update(created_at=timezone.now() - timedelta(days=10))

        res = self.client.get(self.url, {"date_from": str(timezone.localdate() - timedelta(days=1))})

        self.assertEqual(res.data["summary"]["order_count"], 1)
        self.assertEqual(res.data["orders"][0]["order_id"], str(self.second.pk))

    def test_bad_input_is_400(self):
        self.assertEqual(self.client.get(self.url, {"date_from": "2024-13-01"}).status_code, 400)
        self.assertEqual(self.client.get(self.url, {"status": "lost"}).status_code, 400)
        self.assertEqual(self.client.get(self.url, {"organization": "nope"}).status_code, 400)

    def test_customer_is_forbidden(self):
        self.client.force_authenticate(self.customer)

        res = self.client.get(self.url)

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
