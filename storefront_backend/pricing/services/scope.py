"""
PATH: pricing/services/scope.py

Load an explicit organization / location pricing context from request ids.

Used by the pricing, cart and checkout APIs. Unlike resolve_price (which
silently ignores context the caller cannot reach), this raises so the API can
answer 403.
"""

from __future__ import annotations

from organizations.models import Location, Organization
from organizations.services.membership import can_access_location, is_member
from pricing.services.exceptions import PricingScopeError


def load_context(user, *, location_id=None, organization_id=None):
    location = None
    organization = None

    if location_id:
        location = (
            Location.objects.select_related("organization")
            .filter(pk=location_id, is_active=True)
            .first()
        )
        if location is None or not can_access_location(user, location):
            raise PricingScopeError("You do not have access to this location.")

    if organization_id:
        organization = Organization.objects.filter(pk=organization_id, is_active=True).first()
        if organization is None or not is_member(user, organization):
            raise PricingScopeError("You do not have access to this organization.")
        if location is not None and location.organization_id != organization.pk:
            raise PricingScopeError("Location does not belong to the selected organization.")
    elif location is not None:
        organization = location.organization

    return location, organization
