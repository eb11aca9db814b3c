# payments/tests/test_payment_methods.py

from __future__ import annotations

from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from organizations.models import Location, Organization, OrganizationMembership
from payments.models import PaymentMethod
from payments.services.payment_methods import default_payment_method
from permissions.roles import ROLE_ADMIN

User = get_user_model()

URL = "/api/payment-methods/"


# -----------------------------
# helpers
# -----------------------------


def _card_payload(org, **overrides):
    payload = {
        "organization": str(org.pk),
        "label": "Clinic Visa",
        "payment_type": PaymentMethod.TYPE_CREDIT_CARD,
        "last_four": "4242",
        "expiry_month": 12,
        "expiry_year": date.today().year + 2,
        "account_holder_name": "Ada Lovelace",
        "payment_token": "tok_visa_abc123",
    }
    payload.update(overrides)
    return payload


def _bank_payload(org, **overrides):
    payload = {
        "organization": str(org.pk),
        "label": "Operating account",
        "payment_type": PaymentMethod.TYPE_BANK_ACCOUNT,
        "last_four": "6789",
        "account_holder_name": "Clinic LLC",
        "bank_name": "First Bank",
        "account_type": PaymentMethod.ACCOUNT_CHECKING,
        "payment_token": "btok_123",
    }
    payload.update(overrides)
    return payload


class PaymentMethodApiTests(TestCase):
    """
    GUARANTEES:
    - Only processor tokens are stored; the token is never returned
    - Raw card numbers are rejected as tokens
    - Cards need an expiry, bank accounts need an account type
    - Organization members share the organization's methods; outsiders see nothing
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(
            email="buyer@example.com",
            password="pass12345",
            approval_status=User.APPROVAL_APPROVED,
        )
        self.org = Organization.objects.create(name="Wellness Clinic")
        OrganizationMembership.objects.create(user=self.user, organization=self.org)
        self.client.force_authenticate(self.user)

    def test_create_card_hides_token(self):
        res = self.client.post(URL, _card_payload(self.org), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertNotIn("payment_token", res.data)
        self.assertEqual(res.data["payment_processor"], "bigcommerce")
        self.assertIn("**** 4242", res.data["display_name"])
        method = PaymentMethod.objects.get(pk=res.data["id"])
        self.assertEqual(method.payment_token, "tok_visa_abc123")
        self.assertEqual(method.user, self.user)

    def test_raw_card_number_is_rejected(self):
        res = self.client.post(
            URL, _card_payload(self.org, payment_token="4242 4242 4242 4242"), format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("payment_token", res.data)
        self.assertEqual(PaymentMethod.objects.count(), 0)

    def test_missing_token_is_rejected(self):
        payload = _card_payload(self.org)
        payload.pop("payment_token")

        res = self.client.post(URL, payload, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("payment_token", res.data)

    def test_card_requires_expiry(self):
        res = self.client.post(
            URL, _card_payload(self.org, expiry_month=None, expiry_year=None), format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expiry_month", res.data)

    def test_last_four_must_be_four_digits(self):
        res = self.client.post(URL, _card_payload(self.org, last_four="42a2"), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("last_four", res.data)

    def test_bank_account_requires_account_type(self):
        res = self.client.post(URL, _bank_payload(self.org, account_type=""), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("account_type", res.data)

    def test_bank_account_display(self):
        res = self.client.post(URL, _bank_payload(self.org), format="json")

        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        self.assertEqual(res.data["display_name"], "First Bank Checking **** 6789")
        self.assertFalse(res.data["is_expired"])

    def test_location_must_belong_to_organization(self):
        other = Organization.objects.create(name="Other Clinic")
        foreign = Location.objects.create(organization=other, name="Elsewhere")
        admin_client = APIClient()
        admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        admin_client.force_authenticate(admin)

        res = admin_client.post(URL, _card_payload(self.org, location=str(foreign.pk)), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("location", res.data)

    def test_non_member_cannot_add_or_see_methods(self):
        self.client.post(URL, _card_payload(self.org), format="json")
        outsider = User.objects.create_user(email="x@example.com", password="pass12345")
        self.client.force_authenticate(outsider)

        created = self.client.post(URL, _card_payload(self.org), format="json")
        listed = self.client.get(URL)

        self.assertEqual(created.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(listed.data["count"], 0)

    def test_colleague_sees_shared_method(self):
        self.client.post(URL, _card_payload(self.org), format="json")
        colleague = User.objects.create_user(email="colleague@example.com", password="pass12345")
        OrganizationMembership.objects.create(user=colleague, organization=self.org)
        self.client.force_authenticate(colleague)

        res = self.client.get(URL)

        self.assertEqual(res.data["count"], 1)

    def test_token_cannot_be_changed(self):
        method_id = self.client.post(URL, _card_payload(self.org), format="json").data["id"]

        res = self.client.patch(f"{URL}{method_id}/", {"payment_token": "tok_other"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(PaymentMethod.objects.get(pk=method_id).payment_token, "tok_visa_abc123")

    def test_label_can_be_changed(self):
        method_id = self.client.post(URL, _card_payload(self.org), format="json").data["id"]

        res = self.client.patch(f"{URL}{method_id}/", {"label": "Front desk card"}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["label"], "Front desk card")


class DefaultPaymentMethodTests(TestCase):
    """
    GUARANTEES:
    - One default per organization scope and per location scope
    - The location default wins; the organization default is the fallback
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.org = Organization.objects.create(name="Wellness Clinic")
        self.location = Location.objects.create(organization=self.org, name="Downtown")
        OrganizationMembership.objects.create(user=self.user, organization=self.org)
        self.client.force_authenticate(self.user)

    def _create(self, **overrides):
        res = self.client.post(URL, _card_payload(self.org, **overrides), format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)
        return PaymentMethod.objects.get(pk=res.data["id"])

    def test_new_default_replaces_old_default_in_same_scope(self):
        first = self._create(is_default=True)
        second = self._create(label="Backup", payment_token="tok_2", is_default=True)

        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(second.is_default)

    def test_location_default_is_a_separate_scope(self):
        org_default = self._create(is_default=True)
        location_default = self._create(
            label="Downtown card", payment_token="tok_3", location=str(self.location.pk), is_default=True
        )

        org_default.refresh_from_db()
        self.assertTrue(org_default.is_default)
        self.assertEqual(default_payment_method(self.org, self.location), location_default)
        self.assertEqual(default_payment_method(self.org), org_default)

    def test_set_default_action(self):
        first = self._create(is_default=True)
        second = self._create(label="Backup", payment_token="tok_2")

        res = self.client.post(f"{URL}{second.pk}/set-default/")

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        first.refresh_from_db()
        self.assertFalse(first.is_default)
        self.assertTrue(res.data["is_default"])

    def test_default_endpoint_falls_back_to_organization(self):
        org_default = self._create(is_default=True)

        res = self.client.get(
            f"{URL}default/", {"organization": str(self.org.pk), "location": str(self.location.pk)}
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["id"], str(org_default.pk))

    def test_default_endpoint_without_default_is_404(self):
        res = self.client.get(f"{URL}default/", {"organization": str(self.org.pk)})

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)


class PaymentMethodModelTests(TestCase):
    def test_card_expiry(self):
        method = PaymentMethod(
            payment_type=PaymentMethod.TYPE_CREDIT_CARD, expiry_month=3, expiry_year=2024
        )

        self.assertTrue(method.is_expired(today=date(2024, 4, 1)))
        self.assertFalse(method.is_expired(today=date(2024, 3, 31)))

    def test_bank_accounts_never_expire(self):
        method = PaymentMethod(payment_type=PaymentMethod.TYPE_ACH, expiry_month=1, expiry_year=2000)

        self.assertFalse(method.is_expired(today=date(2024, 1, 1)))
