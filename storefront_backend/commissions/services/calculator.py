"""
PATH: commissions/services/calculator.py

MARGIN-BASED COMMISSION CALCULATION

Per order line:
    margin = (unit_price - unit_cost) * quantity      (counted only when > 0)

Line commission:
- markup line (markup_amount > 0): 100% of margin
- otherwise: margin * rate / 100
  rate = distributor.commission_rate when the assignment has an active distributor,
         else the assignment's commission_rate

Split (only when a distributor is attached):
- none                       rep gets everything
- percentage_of_distributor  rep = total * sales_rep_rate / 100, distributor = remainder
- fixed_with_override        per line: markup lines 100% to rep; otherwise
                             rep = margin * sales_rep_rate / 100,
                             distributor = margin * distributor_override_rate / 100

Recording:
- only completed orders with a sales rep and an active assignment
- house-account orders earn nothing
- one Commission per order; recomputed only while still pending
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction

from commissions.models import Commission, DistributorSalesRep, OrganizationSalesRep
from orders.models import Order

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _pct(amount: Decimal, rate) -> Decimal:
    return Decimal(amount) * Decimal(str(rate)) / HUNDRED


@dataclass
class CommissionBreakdown:
    commission_rate: Decimal
    total_margin: Decimal = Decimal("0.00")
    commission_amount: Decimal = Decimal("0.00")
    sales_rep_commission: Decimal = Decimal("0.00")
    distributor_commission: Decimal | None = None
    split_type: str = ""
    margin_details: list = field(default_factory=list)


def _lines(order: Order):
    for item in order.items.all():
        price = Decimal(item.unit_price or 0)
        cost = Decimal(item.unit_cost or 0)
        markup = Decimal(item.markup_amount or 0)
        quantity = int(item.quantity or 1)
        yield item, price, cost, markup, quantity, (price - cost) * quantity


def calculate_commission(order: Order, assignment: OrganizationSalesRep) -> CommissionBreakdown:
    distributor = assignment.distributor if assignment.distributor_id else None
    if distributor is not None and not distributor.is_active:
        distributor = None

    base_rate = Decimal(distributor.commission_rate if distributor else assignment.commission_rate)
    breakdown = CommissionBreakdown(commission_rate=Decimal(assignment.commission_rate))

    total = Decimal("0")
    margin_total = Decimal("0")
    for item, price, cost, markup, quantity, margin in _lines(order):
        if margin <= 0:
            continue
        line_commission = margin if markup > 0 else _pct(margin, base_rate)
        margin_total += margin
        total += line_commission
        breakdown.margin_details.append(
            {
                "product_id": str(item.product_id) if item.product_id else None,
                "name": item.name,
                "price": str(_money(price)),
                "cost": str(_money(cost)),
                "markup": str(_money(markup)),
                "quantity": quantity,
                "margin": str(_money(margin)),
                "commission": str(_money(line_commission)),
            }
        )

    breakdown.total_margin = _money(margin_total)

    if distributor is None:
        breakdown.commission_amount = _money(total)
        breakdown.sales_rep_commission = _money(total)
        return breakdown

    link = DistributorSalesRep.objects.filter(
        distributor=distributor, sales_rep=assignment.sales_rep, is_active=True
    ).first()
    split_type = link.commission_split_type if link else DistributorSalesRep.SPLIT_NONE
    rep_rate = Decimal(link.sales_rep_rate) if link else HUNDRED
    override_rate = Decimal(link.distributor_override_rate) if link else Decimal("0")

    breakdown.split_type = split_type

    if split_type == DistributorSalesRep.SPLIT_PERCENTAGE:
        rep = _pct(total, rep_rate)
        dist = total - rep
    elif split_type == DistributorSalesRep.SPLIT_FIXED_OVERRIDE:
        rep = Decimal("0")
        dist = Decimal("0")
        for _item, _price, _cost, markup, _qty, margin in _lines(order):
            if margin <= 0:
                continue
            if markup > 0:
                rep += margin
            else:
                rep += _pct(margin, rep_rate)
                dist += _pct(margin, override_rate)
        total = rep + dist
    else:
        rep = total
        dist = Decimal("0")

    breakdown.commission_amount = _money(total)
    breakdown.sales_rep_commission = _money(rep)
    breakdown.distributor_commission = _money(dist)
    return breakdown


@transaction.atomic
def record_commission_for_order(order: Order) -> Commission | None:
    if order.status != Order.STATUS_COMPLETED or order.sales_rep_id is None:
        return None

    if order.organization_id and order.organization.is_house_account:
        logger.info("House account order; no commission", extra={"order_id": str(order.pk)})
        return None

    assignment = (
        OrganizationSalesRep.objects.select_related("distributor", "sales_rep")
        .filter(organization_id=order.organization_id, sales_rep_id=order.sales_rep_id, is_active=True)
        .first()
    )
    if assignment is None:
        return None

    existing = Commission.objects.select_for_update().filter(order=order).first()
    if existing is not None and existing.status != Commission.STATUS_PENDING:
        return existing

    breakdown = calculate_commission(order, assignment)

    commission = existing or Commission(order=order)
    commission.sales_rep_id = order.sales_rep_id
    commission.organization_id = order.organization_id
    commission.distributor = assignment.distributor if breakdown.split_type else None
    commission.order_total = _money(order.total)
    commission.total_margin = breakdown.total_margin
    commission.commission_rate = breakdown.commission_rate
    commission.commission_amount = breakdown.commission_amount
    commission.sales_rep_commission = breakdown.sales_rep_commission
    commission.distributor_commission = breakdown.distributor_commission
    commission.commission_split_type = breakdown.split_type
    commission.margin_details = breakdown.margin_details
    commission.save()

    logger.info(
        "Commission recorded",
        extra={
            "order_id": str(order.pk),
            "commission_id": str(commission.pk),
            "sales_rep_id": str(order.sales_rep_id),
            "amount": str(commission.commission_amount),
        },
    )
    return commission


def cancel_commission_for_order(order: Order) -> int:
    return Commission.objects.filter(
        order=order,
        status__in=[Commission.STATUS_PENDING, Commission.STATUS_APPROVED],
    ).update(status=Commission.STATUS_CANCELLED)
