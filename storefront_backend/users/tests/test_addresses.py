from __future__ import annotations

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from organizations.models import Location, Organization
from users.models import CustomerAddress

User = get_user_model()


def _address_payload(**overrides):
    payload = {
        "address_type": CustomerAddress.TYPE_SHIPPING,
        "label": "Front desk",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address1": "1 Main St",
        "city": "Austin",
        "state_or_province": "Texas",
        "postal_code": "78701",
        "country_code": "us",
        "is_default": True,
    }
    payload.update(overrides)
    return payload


class CustomerAddressTests(TestCase):
    """
    GUARANTEES:
    - One default address per user and type
    - Addresses are owner-scoped and soft-deleted
    - Organization scoping requires membership
    """

    def setUp(self):
        self.client = APIClient()
        self.user = User.objects.create_user(email="buyer@example.com", password="pass12345")
        self.client.force_authenticate(self.user)
        self.url = "/api/auth/addresses/"

    def test_new_default_replaces_old_default(self):
        first = self.client.post(self.url, _address_payload(), format="json")
        second = self.client.post(self.url, _address_payload(label="Warehouse"), format="json")

        self.assertEqual(first.status_code, status.HTTP_201_CREATED, first.data)
        self.assertEqual(second.status_code, status.HTTP_201_CREATED, second.data)
        defaults = CustomerAddress.objects.filter(user=self.user, is_default=True)
        self.assertEqual([a.label for a in defaults], ["Warehouse"])
        self.assertEqual(defaults[0].country_code, "US")

    def test_delete_is_soft(self):
        address_id = self.client.post(self.url, _address_payload(), format="json").data["id"]

        res = self.client.delete(f"{self.url}{address_id}/")

        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        address = CustomerAddress.objects.get(pk=address_id)
        self.assertFalse(address.is_active)
        self.assertEqual(self.client.get(self.url).data["count"], 0)

    def test_other_users_addresses_are_hidden(self):
        address_id = self.client.post(self.url, _address_payload(), format="json").data["id"]
        self.client.force_authenticate(User.objects.create_user(email="x@example.com", password="pass12345"))

        res = self.client.get(f"{self.url}{address_id}/")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_organization_requires_membership(self):
        org = Organization.objects.create(name="Foreign Org")
        Location.objects.create(organization=org, name="Dock")

        res = self.client.post(self.url, _address_payload(organization=str(org.pk)), format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("organization", res.data)

    def test_commerce_payload_defaults_email(self):
        address_id = self.client.post(self.url, _address_payload(), format="json").data["id"]

        payload = CustomerAddress.objects.get(pk=address_id).as_commerce_address()

        self.assertEqual(payload["email"], "buyer@example.com")
        self.assertEqual(payload["state_or_province"], "Texas")
