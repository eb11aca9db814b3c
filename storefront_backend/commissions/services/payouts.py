"""
PATH: commissions/services/payouts.py

Commission status flow:

    pending  -> approved | cancelled
    approved -> paid | cancelled
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from commissions.models import Commission
from commissions.services.exceptions import CommissionStateError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

ALLOWED_TRANSITIONS = {
    Commission.STATUS_PENDING: {Commission.STATUS_APPROVED, Commission.STATUS_CANCELLED},
    Commission.STATUS_APPROVED: {Commission.STATUS_PAID, Commission.STATUS_CANCELLED},
}


def _check(commission: Commission, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS.get(commission.status, set()):
        raise CommissionStateError(
            f"Commission cannot move from '{commission.status}' to '{target}'"
        )


@transaction.atomic
def approve_commission(commission: Commission, *, actor, notes: str = "") -> Commission:
    _check(commission, Commission.STATUS_APPROVED)
    commission.status = Commission.STATUS_APPROVED
    commission.approved_by = actor
    commission.approved_at = timezone.now()
    if notes:
        commission.notes = notes
    commission.save()
    logger.info("Commission approved", extra={"commission_id": str(commission.pk), "actor_id": str(actor.pk)})
    return commission


@transaction.atomic
def mark_commission_paid(commission: Commission, *, payment_reference: str = "", actor=None) -> Commission:
    _check(commission, Commission.STATUS_PAID)
    commission.status = Commission.STATUS_PAID
    commission.paid_at = timezone.now()
    commission.payment_reference = payment_reference or ""
    commission.save()
    logger.info(
        "Commission paid",
        extra={"commission_id": str(commission.pk), "payment_reference": commission.payment_reference},
    )
    return commission


@transaction.atomic
def cancel_commission(commission: Commission, *, notes: str = "", actor=None) -> Commission:
    _check(commission, Commission.STATUS_CANCELLED)
    commission.status = Commission.STATUS_CANCELLED
    if notes:
        commission.notes = notes
    commission.save()
    return commission


def _money(v) -> str:
    """JSON-safe money string; SQLite aggregates come back unscaled."""
    if v is None:
        return "0.00"
    return str(Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP))


def commission_summary(queryset) -> dict:
    """Totals by status for a commission queryset (typically one rep's rows)."""
    agg = queryset.aggregate(
        total=Sum("sales_rep_commission", filter=~Q(status=Commission.STATUS_CANCELLED)),
        pending=Sum("sales_rep_commission", filter=Q(status=Commission.STATUS_PENDING)),
        approved=Sum("sales_rep_commission", filter=Q(status=Commission.STATUS_APPROVED)),
        paid=Sum("sales_rep_commission", filter=Q(status=Commission.STATUS_PAID)),
        orders=Count("order", distinct=True),
    )
    return {
        "total_commissions": _money(agg["total"]),
        "pending_amount": _money(agg["pending"]),
        "approved_amount": _money(agg["approved"]),
        "paid_amount": _money(agg["paid"]),
        "total_orders": agg["orders"] or 0,
    }
