"""
PATH: commissions/services/assignments.py

SALES REP ASSIGNMENT

- assign: upsert (organization, rep); re-assigning reactivates and updates the rate
- remove: soft deactivate
- an organization is served by its default rep when that rep holds an active
  assignment, otherwise by its most recently assigned active rep
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction

from commissions.models import OrganizationSalesRep
from commissions.services.exceptions import NotASalesRepError
from permissions.roles import ROLE_SALES_REP, get_user_role

logger = logging.getLogger(__name__)


def sales_rep_for_organization(organization):
    if organization is None:
        return None
    links = OrganizationSalesRep.objects.select_related("sales_rep", "distributor").filter(
        organization=organization, is_active=True, sales_rep__is_active=True
    )
    if organization.default_sales_rep_id:
        link = links.filter(sales_rep_id=organization.default_sales_rep_id).first()
        if link is not None:
            return link
    return links.order_by("-assigned_at").first()


def represented_organization_ids(user) -> set:
    if not user or not user.is_authenticated:
        return set()
    return set(
        OrganizationSalesRep.objects.filter(sales_rep=user, is_active=True).values_list(
            "organization_id", flat=True
        )
    )


@transaction.atomic
def assign_sales_rep(
    *,
    organization,
    sales_rep,
    commission_rate: Decimal | None = None,
    distributor=None,
    actor=None,
) -> OrganizationSalesRep:
    if get_user_role(sales_rep) != ROLE_SALES_REP:
        raise NotASalesRepError("User is not a sales rep")

    link = OrganizationSalesRep.objects.filter(organization=organization, sales_rep=sales_rep).first()
    if link is None:
        link = OrganizationSalesRep(organization=organization, sales_rep=sales_rep)

    link.commission_rate = (
        Decimal(str(commission_rate)) if commission_rate is not None else OrganizationSalesRep.DEFAULT_RATE
    )
    link.distributor = distributor
    link.is_active = True
    link.save()

    logger.info(
        "Sales rep assigned",
        extra={
            "organization_id": str(organization.pk),
            "sales_rep_id": str(sales_rep.pk),
            "commission_rate": str(link.commission_rate),
            "actor_id": str(getattr(actor, "pk", "")),
        },
    )
    return link


@transaction.atomic
def remove_sales_rep(*, organization, sales_rep, actor=None) -> int:
    updated = OrganizationSalesRep.objects.filter(
        organization=organization, sales_rep=sales_rep, is_active=True
    ).update(is_active=False)
    logger.info(
        "Sales rep removed",
        extra={
            "organization_id": str(organization.pk),
            "sales_rep_id": str(sales_rep.pk),
            "actor_id": str(getattr(actor, "pk", "")),
        },
    )
    return updated
