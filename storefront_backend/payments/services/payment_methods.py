"""
PATH: payments/services/payment_methods.py

Saved payment methods are shared by everyone in the owning organization:
- any member may list, add, edit and remove the organization's methods
- account admins reach every organization
- the processor token is write-once; edits touch display data only
"""

from __future__ import annotations

import logging

from django.db import transaction

from organizations.services.membership import can_access_location, is_member, organization_ids_for
from payments.models import PaymentMethod
from permissions.roles import is_admin

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "label",
    "location",
    "expiry_month",
    "expiry_year",
    "account_holder_name",
    "bank_name",
    "account_type",
    "is_default",
)


class PaymentMethodAccessError(Exception):
    pass


def visible_payment_methods(user):
    qs = PaymentMethod.objects.select_related("organization", "location", "user")
    if is_admin(user):
        return qs
    return qs.filter(organization_id__in=organization_ids_for(user))


def check_scope(user, organization, location=None) -> None:
    if is_admin(user):
        return
    if not is_member(user, organization):
        raise PaymentMethodAccessError("You are not a member of this organization.")
    if location is not None and not can_access_location(user, location):
        raise PaymentMethodAccessError("You do not have access to this location.")


def create_payment_method(user, **data) -> PaymentMethod:
    check_scope(user, data["organization"], data.get("location"))
    method = PaymentMethod(user=user, **data)
    method.save()
    logger.info(
        "Payment method added",
        extra={
            "payment_method_id": str(method.pk),
            "organization_id": str(method.organization_id),
            "payment_type": method.payment_type,
        },
    )
    return method


def update_payment_method(method: PaymentMethod, user, data: dict) -> PaymentMethod:
    check_scope(user, method.organization, data.get("location", method.location))
    for field in UPDATABLE_FIELDS:
        if field in data:
            setattr(method, field, data[field])
    method.save()
    return method


@transaction.atomic
def set_default(method: PaymentMethod) -> PaymentMethod:
    method.is_default = True
    method.save()
    logger.info(
        "Default payment method changed",
        extra={"payment_method_id": str(method.pk), "organization_id": str(method.organization_id)},
    )
    return method


def default_payment_method(organization, location=None) -> PaymentMethod | None:
    """Location default first, then the organization-wide default."""
    qs = PaymentMethod.objects.filter(organization=organization, is_default=True)
    if location is not None:
        method = qs.filter(location=location).first()
        if method is not None:
            return method
    return qs.filter(location__isnull=True).first()
