# users/tests/test_auth.py

"""
AUTH & ACCOUNT TESTS

Run with:
    python manage.py test users -v 2
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from permissions.roles import ROLE_ADMIN, ROLE_SALES_REP
from users.models import LoginAudit

User = get_user_model()

PASSWORD = "Calm-Harbor-2931"


class RegisterLoginTests(TestCase):
    """
    GUARANTEES:
    - Registration creates a pending customer, whatever role is posted
    - Login works with email or username and returns a JWT pair
    - Every login attempt is audited
    """

    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def _register(self, **overrides):
        payload = {"email": "new@example.com", "password": PASSWORD, "username": "newbie"}
        payload.update(overrides)
        return self.client.post("/api/auth/register/", payload, format="json")

    def test_register_creates_pending_customer(self):
        res = self._register(role=ROLE_ADMIN)

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        user = User.objects.get(email="new@example.com")
        self.assertEqual(user.role, "customer")
        self.assertEqual(user.approval_status, User.APPROVAL_PENDING)
        self.assertFalse(res.data["user"]["is_pricing_eligible"])

    def test_duplicate_email_rejected(self):
        self._register()

        res = self._register(username="other")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("email", res.data)

    def test_login_with_email_or_username(self):
        self._register()

        for identifier in ("new@example.com", "NEWBIE"):
            res = self.client.post(
                "/api/auth/login/",
                {"identifier": identifier, "password": PASSWORD, "age_verified": True},
                format="json",
            )
            self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
            self.assertIn("access", res.data)
            self.assertIn("refresh", res.data)

        self.assertEqual(LoginAudit.objects.filter(success=True, age_verified=True).count(), 2)

    def test_failed_login_is_audited(self):
        self._register()

        res = self.client.post(
            "/api/auth/login/",
            {"identifier": "new@example.com", "password": "wrong"},
            format="json",
            HTTP_X_FORWARDED_FOR="203.0.113.7, 10.0.0.1",
        )

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        audit = LoginAudit.objects.get()
        self.assertFalse(audit.success)
        self.assertEqual(audit.failure_reason, "invalid_credentials")
        self.assertEqual(audit.ip_address, "203.0.113.7")
        self.assertIsNotNone(audit.user)

    def test_inactive_user_cannot_login(self):
        User.objects.create_user(email="gone@example.com", password=PASSWORD, is_active=False)

        res = self.client.post(
            "/api/auth/login/",
            {"identifier": "gone@example.com", "password": PASSWORD},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(LoginAudit.objects.get().failure_reason, "inactive")


class UserManagerTests(TestCase):
    def test_username_derived_from_email(self):
        first = User.objects.create_user(email="sam@example.com", password=PASSWORD)
        second = User.objects.create_user(email="sam@example.org", password=PASSWORD)

        self.assertEqual(first.username, "sam")
        self.assertEqual(second.username, "sam2")

    def test_admins_are_approved_on_creation(self):
        admin = User.objects.create_user(email="boss@example.com", password=PASSWORD, role=ROLE_ADMIN)

        self.assertTrue(admin.is_approved)
        self.assertTrue(admin.is_pricing_eligible)

    def test_inactive_user_is_not_pricing_eligible(self):
        user = User.objects.create_user(
            email="x@example.com",
            password=PASSWORD,
            approval_status=User.APPROVAL_APPROVED,
            is_active=False,
        )

        self.assertFalse(user.is_pricing_eligible)


class ApprovalAPITests(TestCase):
    """
    GUARANTEES:
    - Only users.approve may approve or reject accounts
    - Approval records who approved and when
    - Admins cannot revoke their own approval
    """

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(email="admin@example.com", password=PASSWORD, role=ROLE_ADMIN)
        self.rep = User.objects.create_user(email="rep@example.com", password=PASSWORD, role=ROLE_SALES_REP)
        self.customer = User.objects.create_user(email="buyer@example.com", password=PASSWORD)

    def _approval_url(self, user):
        return f"/api/auth/users/{user.pk}/approval/"

    def test_sales_rep_cannot_approve(self):
        self.client.force_authenticate(self.rep)

        res = self.client.post(self._approval_url(self.customer), {"status": "approved"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_approves(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(self._approval_url(self.customer), {"status": "approved"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.customer.refresh_from_db()
        self.assertTrue(self.customer.is_approved)
        self.assertEqual(self.customer.approved_by, self.admin)
        self.assertIsNotNone(self.customer.approved_at)

    def test_reject_clears_approval(self):
        self.client.force_authenticate(self.admin)
        self.client.post(self._approval_url(self.customer), {"status": "approved"}, format="json")

        self.client.post(self._approval_url(self.customer), {"status": "rejected"}, format="json")

        self.customer.refresh_from_db()
        self.assertEqual(self.customer.approval_status, User.APPROVAL_REJECTED)
        self.assertIsNone(self.customer.approved_by)

    def test_admin_cannot_revoke_self(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(self._approval_url(self.admin), {"status": "rejected"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_me_lists_capabilities(self):
        self.client.force_authenticate(self.rep)

        res = self.client.get("/api/auth/me/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertIn("costs.view", res.data["capabilities"])
        self.assertNotIn("users.approve", res.data["capabilities"])
