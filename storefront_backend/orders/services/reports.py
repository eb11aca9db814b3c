"""
PATH: orders/services/reports.py

PROFIT REPORT

Per order:
    revenue       = order.subtotal (merchandise only; tax and shipping excluded)
    cost          = sum(unit_cost * quantity) from the line snapshots
    gross_profit  = revenue - cost
    profit_margin = gross_profit / revenue * 100   (0 when revenue is 0)

Summary margin is weighted: total_profit / total_revenue * 100.
Lines without a cost snapshot count as zero cost and are reported as missing.
Cancelled orders are excluded unless a status is asked for explicitly.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from orders.models import Order

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")


def _money(v) -> str:
    """JSON-safe money string."""
    return str(Decimal(v).quantize(TWOPLACES, rounding=ROUND_HALF_UP))


def _margin(profit: Decimal, revenue: Decimal) -> str:
    if revenue <= 0:
        return "0.00"
    return _money(profit / revenue * HUNDRED)


def profit_report(*, date_from=None, date_to=None, status=None, organization=None) -> dict:
    qs = Order.objects.select_related("organization").prefetch_related("items")
    if status:
        qs = qs.filter(status=status)
    else:
        qs = qs.exclude(status=Order.STATUS_CANCELLED)
    if organization:
        qs = qs.filter(organization_id=organization)
    if date_from:
        qs = qs.filter(created_at__date__gte=date_from)
    if date_to:
        qs = qs.filter(created_at__date__lte=date_to)

    rows = []
    total_revenue = Decimal("0")
    total_cost = Decimal("0")
    missing_cost = 0

    for order in qs.order_by("-created_at"):
        revenue = Decimal(order.subtotal or 0)
        cost = Decimal("0")
        for item in order.items.all():
            if item.unit_cost is None:
                missing_cost += 1
                continue
            cost += Decimal(item.unit_cost) * int(item.quantity or 1)

        profit = revenue - cost
        total_revenue += revenue
        total_cost += cost
        rows.append(
            {
                "order_id": str(order.pk),
                "order_no": order.order_no,
                "created_at": order.created_at.isoformat(),
                "status": order.status,
                "organization": order.organization.name if order.organization_id else None,
                "revenue": _money(revenue),
                "total_cost": _money(cost),
                "gross_profit": _money(profit),
                "profit_margin": _margin(profit, revenue),
            }
        )

    total_profit = total_revenue - total_cost
    return {
        "summary": {
            "order_count": len(rows),
            "total_revenue": _money(total_revenue),
            "total_cost": _money(total_cost),
            "total_profit": _money(total_profit),
            "average_margin": _margin(total_profit, total_revenue),
            "items_missing_cost": missing_cost,
        },
        "orders": rows,
    }
