"""
PATH: orders/services/orders.py

ORDER SERVICE

Responsibilities:
- Build the internal Order from a checkout session snapshot (idempotent per session)
- Build pending orders from priced lines (recurring orders)
- Apply lifecycle transitions and stamp their timestamps
- Record shipment tracking
- Scope order visibility per caller
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from organizations.services.membership import organization_ids_for
from orders.models import Order, OrderItem
from orders.services.lifecycle import validate_transition
from permissions.roles import CAP_ORDERS_VIEW_ALL, user_has_capability
from products.models import Product

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# VISIBILITY
# ============================================================


def visible_orders(user):
    """
    - orders.view_all: everything
    - otherwise: own orders, orders of my organizations, orders of organizations I represent
    """
    qs = Order.objects.select_related("user", "organization", "location", "sales_rep")
    if user_has_capability(user, CAP_ORDERS_VIEW_ALL):
        return qs

    from commissions.services.assignments import represented_organization_ids

    org_ids = organization_ids_for(user) | represented_organization_ids(user)
    return qs.filter(Q(user=user) | Q(organization_id__in=org_ids) | Q(sales_rep=user)).distinct()


# ============================================================
# CREATION
# ============================================================


def _sales_rep_for(organization):
    if organization is None:
        return None
    from commissions.services.assignments import sales_rep_for_organization

    link = sales_rep_for_organization(organization)
    if link is not None:
        return link.sales_rep
    rep = organization.default_sales_rep
    return rep if rep is not None and rep.is_active else None


def _create_items(order: Order, lines: list[dict]) -> None:
    """lines use the checkout snapshot keys (price, retail_price, cost, markup, source)."""
    product_ids = [line.get("product_id") for line in lines if line.get("product_id")]
    products = {str(p.pk): p for p in Product.objects.filter(pk__in=product_ids)}

    for line in lines:
        quantity = int(line["quantity"])
        unit_price = _money(line["price"])
        OrderItem.objects.create(
            order=order,
            product=products.get(str(line.get("product_id"))),
            external_id=line.get("external_id"),
            name=line.get("name") or "",
            quantity=quantity,
            unit_price=unit_price,
            retail_price=_money(line.get("retail_price")),
            unit_cost=_money(line["cost"]) if line.get("cost") not in (None, "") else None,
            markup_amount=_money(line.get("markup")),
            price_source=line.get("source") or "regular",
            line_total=_money(unit_price * quantity),
        )


@transaction.atomic
def create_order_from_session(session, *, external_order_id: str = "", status: str = Order.STATUS_COMPLETED) -> Order:
    """
    Idempotent: a session that already produced an order returns it unchanged.
    """
    existing = Order.objects.filter(checkout_session=session).first()
    if existing is not None:
        return existing

    order = Order.objects.create(
        user=session.user,
        organization=session.organization,
        location=session.location,
        sales_rep=_sales_rep_for(session.organization),
        checkout_session=session,
        external_order_id=str(external_order_id or ""),
        external_cart_id=session.cart_id or "",
        status=status,
        subtotal=_money(session.subtotal),
        tax=_money(session.tax),
        shipping=_money(session.shipping),
        total=_money(session.total),
        currency=session.currency,
        shipping_address=session.shipping_address or {},
        billing_address=session.billing_address or {},
        customer_email=(session.billing_address or {}).get("email") or session.user.email,
    )
    _create_items(order, session.cart_items)

    logger.info(
        "Order created from checkout session",
        extra={
            "order_id": str(order.pk),
            "order_no": order.order_no,
            "session_id": str(session.pk),
            "external_order_id": order.external_order_id,
            "total": str(order.total),
        },
    )
    return order


@transaction.atomic
def create_order_from_lines(
    user,
    lines: list[dict],
    *,
    organization=None,
    location=None,
    tax=Decimal("0.00"),
    shipping=Decimal("0.00"),
    shipping_address: dict | None = None,
    currency: str = "USD",
    status: str = Order.STATUS_PENDING,
) -> Order:
    """Order without a checkout session (recurring orders)."""
    subtotal = _money(sum(_money(line["price"]) * int(line["quantity"]) for line in lines))
    order = Order.objects.create(
        user=user,
        organization=organization,
        location=location,
        sales_rep=_sales_rep_for(organization),
        status=status,
        subtotal=subtotal,
        tax=_money(tax),
        shipping=_money(shipping),
        total=_money(subtotal + _money(tax) + _money(shipping)),
        currency=currency,
        shipping_address=shipping_address or {},
        billing_address=shipping_address or {},
        customer_email=user.email,
    )
    _create_items(order, lines)

    logger.info(
        "Order created",
        extra={"order_id": str(order.pk), "order_no": order.order_no, "total": str(order.total)},
    )
    return order


# ============================================================
# LIFECYCLE
# ============================================================

_TIMESTAMP_FIELD = {
    Order.STATUS_COMPLETED: "completed_at",
    Order.STATUS_SHIPPED: "shipped_at",
    Order.STATUS_DELIVERED: "delivered_at",
    Order.STATUS_CANCELLED: "cancelled_at",
}


@transaction.atomic
def transition_order(order: Order, target_status: str, *, actor=None) -> Order:
    order = Order.objects.select_for_update().get(pk=order.pk)
    validate_transition(order=order, target_status=target_status)

    previous = order.status
    order.status = target_status
    stamp = _TIMESTAMP_FIELD.get(target_status)
    if stamp and getattr(order, stamp) is None:
        setattr(order, stamp, timezone.now())
    order.save()

    if target_status == Order.STATUS_COMPLETED:
        from commissions.services.calculator import record_commission_for_order

        record_commission_for_order(order)
    elif target_status == Order.STATUS_CANCELLED:
        from commissions.services.calculator import cancel_commission_for_order

        cancel_commission_for_order(order)

    logger.info(
        "Order status changed",
        extra={
            "order_id": str(order.pk),
            "from": previous,
            "to": target_status,
            "actor_id": str(getattr(actor, "pk", "")),
        },
    )
    return order


@transaction.atomic
def record_shipment(order: Order, *, tracking_number: str, carrier: str = "", actor=None) -> Order:
    """Store tracking info; moves a completed order to shipped."""
    order.tracking_number = tracking_number.strip()
    order.carrier = (carrier or "").strip()
    order.save(update_fields=["tracking_number", "carrier", "updated_at"])

    if order.status == Order.STATUS_COMPLETED:
        order = transition_order(order, Order.STATUS_SHIPPED, actor=actor)
    return order


def mark_order_viewed(order: Order) -> Order:
    if order.viewed_at is None:
        order.viewed_at = timezone.now()
        order.save(update_fields=["viewed_at", "updated_at"])
    return order
