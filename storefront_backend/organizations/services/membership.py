"""
PATH: organizations/services/membership.py

MEMBERSHIP SCOPE HELPERS

Used by pricing, cart, checkout and orders to answer "which organizations and
locations may this user act for?".

Access rules:
- account admins reach every active organization/location
- an org-wide membership (location NULL) reaches every location of that org
- an org admin/manager reaches every location of that org
- a location-pinned member/viewer reaches only that location

Pricing scope (implicit, when the caller picks no context):
- organizations: all active orgs the user belongs to
- locations: only locations the user is explicitly pinned to
"""

from __future__ import annotations

from django.db import transaction
from django.db.models import Q

from organizations.models import Location, Organization, OrganizationMembership
from permissions.roles import is_admin


class MembershipError(Exception):
    pass


def memberships_for(user):
    if not user or not user.is_authenticated:
        return OrganizationMembership.objects.none()
    return OrganizationMembership.objects.filter(
        user=user,
        organization__is_active=True,
    )


def organization_ids_for(user) -> set:
    return set(memberships_for(user).values_list("organization_id", flat=True))


def pinned_location_ids_for(user) -> set:
    return set(
        memberships_for(user)
        .filter(location__isnull=False, location__is_active=True)
        .values_list("location_id", flat=True)
    )


def accessible_locations(user):
    if not user or not user.is_authenticated:
        return Location.objects.none()
    if is_admin(user):
        return Location.objects.filter(is_active=True, organization__is_active=True)

    memberships = memberships_for(user)
    wide_org_ids = set(
        memberships.filter(location__isnull=True).values_list("organization_id", flat=True)
    )
    wide_org_ids |= set(
        memberships.filter(role__in=OrganizationMembership.MANAGING_ROLES).values_list(
            "organization_id", flat=True
        )
    )
    pinned = pinned_location_ids_for(user)

    return Location.objects.filter(is_active=True, organization__is_active=True).filter(
        Q(organization_id__in=wide_org_ids) | Q(pk__in=pinned)
    )


def location_ids_for(user) -> set:
    return set(accessible_locations(user).values_list("pk", flat=True))


def is_member(user, organization: Organization) -> bool:
    if is_admin(user):
        return True
    return memberships_for(user).filter(organization=organization).exists()


def can_access_location(user, location: Location) -> bool:
    if not location.is_active:
        return False
    return accessible_locations(user).filter(pk=location.pk).exists()


def can_manage_organization(user, organization: Organization) -> bool:
    if is_admin(user):
        return True
    return (
        memberships_for(user)
        .filter(organization=organization, role__in=OrganizationMembership.MANAGING_ROLES)
        .exists()
    )


def primary_membership(user):
    return memberships_for(user).filter(is_primary=True).select_related(
        "organization", "location"
    ).first()


@transaction.atomic
def assign_member(
    *,
    user,
    organization: Organization,
    location: Location | None = None,
    role: str = OrganizationMembership.ROLE_MEMBER,
    is_primary: bool = False,
) -> OrganizationMembership:
    """
    Upsert: re-assigning the same (user, organization, location) updates role/primary.
    """
    if location is not None and location.organization_id != organization.pk:
        raise MembershipError("Location does not belong to the selected organization.")

    membership = OrganizationMembership.objects.filter(
        user=user, organization=organization, location=location
    ).first()
    if membership is None:
        membership = OrganizationMembership(user=user, organization=organization, location=location)

    membership.role = role
    membership.is_primary = is_primary
    membership.save()
    return membership
