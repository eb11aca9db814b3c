# organizations/tests/test_organizations.py

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from organizations.models import Location, Organization, OrganizationMembership
from organizations.services.membership import (
    MembershipError,
    accessible_locations,
    assign_member,
    can_manage_organization,
    location_ids_for,
    pinned_location_ids_for,
)
from permissions.roles import ROLE_ADMIN

User = get_user_model()


class MembershipScopeTests(TestCase):
    """
    GUARANTEES:
    - Org-wide members reach every active location of the org
    - Location-pinned members reach only their location
    - Managers reach every location even when pinned
    - Inactive organizations grant nothing
    """

    def setUp(self):
        self.org = Organization.objects.create(name="Riverside Health")
        self.clinic_a = Location.objects.create(organization=self.org, name="Clinic A")
        self.clinic_b = Location.objects.create(organization=self.org, name="Clinic B")
        self.user = User.objects.create_user(email="member@example.com", password="pass12345")

    def test_org_wide_membership(self):
        assign_member(user=self.user, organization=self.org)

        self.assertEqual(set(accessible_locations(self.user)), {self.clinic_a, self.clinic_b})
        self.assertEqual(location_ids_for(self.user), {self.clinic_a.pk, self.clinic_b.pk})
        self.assertEqual(pinned_location_ids_for(self.user), set())

    def test_pinned_membership(self):
        assign_member(user=self.user, organization=self.org, location=self.clinic_a)

        self.assertEqual(list(accessible_locations(self.user)), [self.clinic_a])
        self.assertEqual(pinned_location_ids_for(self.user), {self.clinic_a.pk})
        self.assertFalse(can_manage_organization(self.user, self.org))

    def test_pinned_manager_reaches_all_locations(self):
        assign_member(
            user=self.user,
            organization=self.org,
            location=self.clinic_a,
            role=OrganizationMembership.ROLE_MANAGER,
        )

        self.assertEqual(accessible_locations(self.user).count(), 2)
        self.assertTrue(can_manage_organization(self.user, self.org))

    def test_inactive_organization_grants_nothing(self):
        assign_member(user=self.user, organization=self.org)
        self.org.is_active = False
        self.org.save()

        self.assertFalse(accessible_locations(self.user).exists())

    def test_location_must_belong_to_organization(self):
        other = Organization.objects.create(name="Elsewhere")

        with self.assertRaises(MembershipError):
            assign_member(user=self.user, organization=other, location=self.clinic_a)

    def test_single_primary_membership(self):
        second = Organization.objects.create(name="Second Org")
        first = assign_member(user=self.user, organization=self.org, is_primary=True)
        assign_member(user=self.user, organization=second, is_primary=True)

        first.refresh_from_db()
        self.assertFalse(first.is_primary)

    def test_organization_name_unique_case_insensitive(self):
        with self.assertRaises(ValidationError):
            Organization.objects.create(name="riverside health")


class OrganizationAPITests(TestCase):
    """
    GUARANTEES:
    - Members only see their own organizations
    - Only orgs.manage creates organizations
    - Org managers may add locations to their own org only
    """

    def setUp(self):
        self.client = APIClient()
        self.admin = User.objects.create_user(email="admin@example.com", password="pass12345", role=ROLE_ADMIN)
        self.manager = User.objects.create_user(email="manager@example.com", password="pass12345")
        self.member = User.objects.create_user(email="member@example.com", password="pass12345")

        self.org = Organization.objects.create(name="Harbor Wellness")
        self.other_org = Organization.objects.create(name="Unrelated Org")
        assign_member(user=self.manager, organization=self.org, role=OrganizationMembership.ROLE_MANAGER)
        assign_member(user=self.member, organization=self.org)

    def test_member_sees_only_own_orgs(self):
        self.client.force_authenticate(self.member)

        res = self.client.get("/api/organizations/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        names = [row["name"] for row in res.data["results"]]
        self.assertEqual(names, ["Harbor Wellness"])

    def test_only_admin_creates_organizations(self):
        self.client.force_authenticate(self.manager)
        res = self.client.post("/api/organizations/", {"name": "New Org"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        res = self.client.post("/api/organizations/", {"name": "New Org", "code": "new"}, format="json")
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)

    def test_manager_adds_location_to_own_org_only(self):
        self.client.force_authenticate(self.manager)

        res = self.client.post(
            "/api/organizations/locations/",
            {"organization": str(self.org.pk), "name": "Downtown"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED, res.data)

        res = self.client.post(
            "/api/organizations/locations/",
            {"organization": str(self.other_org.pk), "name": "Sneaky"},
            format="json",
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

    def test_delete_deactivates(self):
        self.client.force_authenticate(self.admin)

        res = self.client.delete(f"/api/organizations/{self.other_org.pk}/")

        self.assertEqual(res.status_code, status.HTTP_204_NO_CONTENT)
        self.other_org.refresh_from_db()
        self.assertFalse(self.other_org.is_active)

    def test_duplicate_membership_is_409(self):
        self.client.force_authenticate(self.admin)

        res = self.client.post(
            "/api/organizations/memberships/",
            {"user": str(self.member.pk), "organization": str(self.org.pk)},
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)

    def test_mine(self):
        self.client.force_authenticate(self.member)

        res = self.client.get("/api/organizations/memberships/mine/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data), 1)
        self.assertEqual(res.data[0]["organization_name"], "Harbor Wellness")
