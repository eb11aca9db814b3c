# commissions/tests/test_commissions.py

"""
COMMISSION TESTS

Run with:
    python manage.py test commissions -v 2
"""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from commissions.models import Commission, Distributor, DistributorSalesRep, OrganizationSalesRep
from commissions.services.assignments import assign_sales_rep, sales_rep_for_organization
from commissions.services.calculator import calculate_commission, record_commission_for_order
from commissions.services.exceptions import CommissionStateError, NotASalesRepError
from commissions.services.payouts import approve_commission, commission_summary, mark_commission_paid
from organizations.models import Organization
from orders.models import Order
from orders.services.orders import create_order_from_lines, transition_order
from permissions.roles import ROLE_ADMIN, ROLE_SALES_REP

User = get_user_model()


# -----------------------------
# helpers
# -----------------------------


def _line(price="30.00", cost="10.00", quantity=2, markup="0.00"):
    return {
        "product_id": None,
        "external_id": 77,
        "name": "Collagen",
        "quantity": quantity,
        "price": price,
        "retail_price": price,
        "cost": cost,
        "markup": markup,
        "source": "regular",
    }


def _completed_order(user, organization, lines):
    order = create_order_from_lines(user, lines, organization=organization)
    return transition_order(order, Order.STATUS_COMPLETED)


class CommissionCalculationTests(TestCase):
    """
    GUARANTEES:
    - Commission is a share of positive line margin
    - Markup lines pay 100% of their margin to the rep
    - Distributor splits follow the rep link's split type
    """

    def setUp(self):
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.org = Organization.objects.create(name="Cedar Wellness")
        self.assignment = assign_sales_rep(organization=self.org, sales_rep=self.rep)

    def _order(self, lines):
        return create_order_from_lines(self.customer, lines, organization=self.org)

    def test_margin_times_rate(self):
        breakdown = calculate_commission(self._order([_line()]), self.assignment)

        self.assertEqual(breakdown.total_margin, Decimal("40.00"))
        self.assertEqual(breakdown.commission_amount, Decimal("2.00"))
        self.assertEqual(breakdown.sales_rep_commission, Decimal("2.00"))
        self.assertIsNone(breakdown.distributor_commission)

    def test_negative_margin_lines_are_ignored(self):
        order = self._order([_line(), _line(price="8.00", cost="10.00")])

        breakdown = calculate_commission(order, self.assignment)

        self.assertEqual(breakdown.total_margin, Decimal("40.00"))
        self.assertEqual(len(breakdown.margin_details), 1)

    def test_markup_line_pays_full_margin(self):
        order = self._order([_line(price="40.00", cost="10.00", quantity=1, markup="5.00")])

        breakdown = calculate_commission(order, self.assignment)

        self.assertEqual(breakdown.commission_amount, Decimal("30.00"))

    def test_percentage_split_with_distributor(self):
        distributor = Distributor.objects.create(name="Acme Dist", code="ACME", commission_rate=Decimal("10.00"))
        DistributorSalesRep.objects.create(
            distributor=distributor,
            sales_rep=self.rep,
            commission_split_type=DistributorSalesRep.SPLIT_PERCENTAGE,
            sales_rep_rate=Decimal("60.00"),
        )
        self.assignment.distributor = distributor
        self.assignment.save()

        breakdown = calculate_commission(self._order([_line()]), self.assignment)

        # 40 margin at the distributor's 10% = 4.00, split 60/40
        self.assertEqual(breakdown.commission_amount, Decimal("4.00"))
        self.assertEqual(breakdown.sales_rep_commission, Decimal("2.40"))
        self.assertEqual(breakdown.distributor_commission, Decimal("1.60"))

    def test_fixed_with_override_split(self):
        distributor = Distributor.objects.create(name="Beta Dist", code="BETA")
        DistributorSalesRep.objects.create(
            distributor=distributor,
            sales_rep=self.rep,
            commission_split_type=DistributorSalesRep.SPLIT_FIXED_OVERRIDE,
            sales_rep_rate=Decimal("50.00"),
            distributor_override_rate=Decimal("20.00"),
        )
        self.assignment.distributor = distributor
        self.assignment.save()

        breakdown = calculate_commission(self._order([_line()]), self.assignment)

        self.assertEqual(breakdown.sales_rep_commission, Decimal("20.00"))
        self.assertEqual(breakdown.distributor_commission, Decimal("8.00"))
        self.assertEqual(breakdown.commission_amount, Decimal("28.00"))

    def test_pending_order_records_nothing(self):
        self.assertIsNone(record_commission_for_order(self._order([_line()])))
        self.assertFalse(Commission.objects.exists())


class AssignmentTests(TestCase):
    def setUp(self):
        self.org = Organization.objects.create(name="Birch Health")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)

    def test_only_sales_reps_can_be_assigned(self):
        customer = User.objects.create_user(email="buyer@example.com", password="pass12345")

        with self.assertRaises(NotASalesRepError):
            assign_sales_rep(organization=self.org, sales_rep=customer)

    def test_assign_is_an_upsert(self):
        assign_sales_rep(organization=self.org, sales_rep=self.rep)
        link = assign_sales_rep(organization=self.org, sales_rep=self.rep, commission_rate=Decimal("7.50"))

        self.assertEqual(OrganizationSalesRep.objects.count(), 1)
        self.assertEqual(link.commission_rate, Decimal("7.50"))
        self.assertEqual(sales_rep_for_organization(self.org), link)


class HouseAccountTests(TestCase):
    """
    GUARANTEES:
    - The organization's default rep wins over a more recent assignment
    - Without any assignment, orders still carry the default rep
    - House-account orders earn no commission
    - Only sales reps can be the default rep
    """

    def setUp(self):
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.other_rep = User.objects.create_user(
            email="rep2@example.com", password="pass12345", role=ROLE_SALES_REP
        )
        self.org = Organization.objects.create(name="Maple Clinic")

    def test_default_rep_wins_over_latest_assignment(self):
        default_link = assign_sales_rep(organization=self.org, sales_rep=self.rep)
        assign_sales_rep(organization=self.org, sales_rep=self.other_rep)
        self.org.default_sales_rep = self.rep
        self.org.save()

        self.assertEqual(sales_rep_for_organization(self.org), default_link)
        order = create_order_from_lines(self.customer, [_line()], organization=self.org)
        self.assertEqual(order.sales_rep, self.rep)

    def test_unassigned_default_rep_is_still_stamped_on_orders(self):
        self.org.default_sales_rep = self.rep
        self.org.save()

        order = _completed_order(self.customer, self.org, [_line()])

        self.assertEqual(order.sales_rep, self.rep)
        # No active assignment, so no rate to pay out.
        self.assertFalse(Commission.objects.filter(order=order).exists())

    def test_house_account_orders_earn_nothing(self):
        assign_sales_rep(organization=self.org, sales_rep=self.rep)
        self.org.is_house_account = True
        self.org.save()

        order = _completed_order(self.customer, self.org, [_line()])

        self.assertEqual(order.sales_rep, self.rep)
        self.assertIsNone(record_commission_for_order(order))
        self.assertFalse(Commission.objects.exists())

    def test_default_rep_must_be_a_sales_rep(self):
        self.org.default_sales_rep = self.customer

        with self.assertRaises(ValidationError):
            self.org.save()

    def test_api_rejects_non_rep_default(self):
        admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        client = APIClient()
        client.force_authenticate(admin)

        bad = client.patch(
            f"/api/organizations/{self.org.pk}/",
            {"default_sales_rep": str(self.customer.pk)},
            format="json",
        )
        good = client.patch(
            f"/api/organizations/{self.org.pk}/",
            {"default_sales_rep": str(self.rep.pk), "is_house_account": True},
            format="json",
        )

        self.assertEqual(bad.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(good.status_code, status.HTTP_200_OK, good.data)
        self.assertTrue(good.data["is_house_account"])
        self.assertEqual(str(good.data["default_sales_rep"]), str(self.rep.pk))


class PayoutTests(TestCase):
    """
    GUARANTEES:
    - pending -> approved -> paid; no skipping
    - Summary sums the rep's share per status
    """

    def setUp(self):
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.org = Organization.objects.create(name="Aspen Clinic")
        assign_sales_rep(organization=self.org, sales_rep=self.rep)

        self.order = _completed_order(self.customer, self.org, [_line()])
        self.commission = Commission.objects.get(order=self.order)

    def test_cannot_pay_pending(self):
        with self.assertRaises(CommissionStateError):
            mark_commission_paid(self.commission, payment_reference="ACH-1")

    def test_approve_then_pay(self):
        approve_commission(self.commission, actor=self.admin)
        mark_commission_paid(self.commission, payment_reference="ACH-1")

        self.commission.refresh_from_db()
        self.assertEqual(self.commission.status, Commission.STATUS_PAID)
        self.assertEqual(self.commission.approved_by, self.admin)
        self.assertIsNotNone(self.commission.paid_at)

    def test_summary(self):
        second = _completed_order(self.customer, self.org, [_line(quantity=4)])
        approve_commission(Commission.objects.get(order=second), actor=self.admin)

        summary = commission_summary(Commission.objects.filter(sales_rep=self.rep))

        self.assertEqual(summary["pending_amount"], "2.00")
        self.assertEqual(summary["approved_amount"], "4.00")
        self.assertEqual(summary["total_commissions"], "6.00")
        self.assertEqual(summary["total_orders"], 2)

    def test_summary_amounts_always_have_two_places(self):
        approve_commission(self.commission, actor=self.admin)
        mark_commission_paid(self.commission, payment_reference="ACH-2")

        summary = commission_summary(Commission.objects.filter(sales_rep=self.rep))
        empty = commission_summary(Commission.objects.none())

        self.assertEqual(summary["paid_amount"], "2.00")
        self.assertEqual(summary["pending_amount"], "0.00")
        self.assertEqual(empty["total_commissions"], "0.00")
        self.assertEqual(empty["total_orders"], 0)


class CommissionAPITests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        self.customer = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.rep = User.objects.create_user(email="rep@example.com", password="pass12345", role=ROLE_SALES_REP)
        self.other_rep = User.objects.create_user(
            email="rep2@example.com", password="pass12345", role=ROLE_SALES_REP
        )
        self.org = Organization.objects.create(name="Maple Clinic")
        assign_sales_rep(organization=self.org, sales_rep=self.rep)
        self.commission = Commission.objects.get(order=_completed_order(self.customer, self.org, [_line()]))

    def test_rep_sees_only_own_commissions(self):
        self.client.force_authenticate(self.rep)
        self.assertEqual(self.client.get("/api/commissions/").data["count"], 1)

        self.client.force_authenticate(self.other_rep)
        self.assertEqual(self.client.get("/api/commissions/").data["count"], 0)

    def test_customer_forbidden(self):
        self.client.force_authenticate(self.customer)

        self.assertEqual(self.client.get("/api/commissions/").status_code, status.HTTP_403_FORBIDDEN)

    def test_rep_cannot_approve(self):
        self.client.force_authenticate(self.rep)

        res = self.client.post(f"/api/commissions/{self.commission.pk}/approve/", {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_approve_and_pay(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(f"/api/commissions/{self.commission.pk}/pay/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

        res = self.client.post(f"/api/commissions/{self.commission.pk}/approve/", {"notes": "ok"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)

        res = self.client.post(
            f"/api/commissions/{self.commission.pk}/pay/", {"payment_reference": "ACH-9"}, format="json"
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], "paid")

    def test_rep_summary(self):
        self.client.force_authenticate(self.rep)

        res = self.client.get("/api/commissions/summary/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["pending_amount"], "2.00")

    def test_assigning_customer_as_rep_is_400(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            "/api/commissions/assignments/",
            {"organization": str(self.org.pk), "sales_rep": str(self.customer.pk)},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
