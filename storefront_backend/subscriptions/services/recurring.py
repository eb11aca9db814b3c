"""
PATH: subscriptions/services/recurring.py

RECURRING ORDER SERVICE

Lifecycle:
    active <-> paused
    active | paused -> cancelled
    active -> expired (end_date passed while processing)

process_due(today):
- one pass over active orders whose next_order_date <= today
- each due order becomes a pending internal Order priced through
  pricing.resolve_price, minus the subscription discount
- success: history "completed", next_order_date advances, total_orders += 1
- failure: history "failed" (retry_count grows on later runs), date NOT
  advanced, the batch keeps going
- an order is processed at most once per run; a late run catches up one
  period at a time
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.db.models import Q
from django.utils import timezone

from commissions.services.assignments import represented_organization_ids
from orders.services.orders import create_order_from_lines
from organizations.services.membership import can_manage_organization, organization_ids_for
from permissions.roles import CAP_RECURRING_MANAGE, user_has_capability
from pricing.services.exceptions import PricingError
from pricing.services.resolver import resolve_price
from subscriptions.models import RecurringOrder, RecurringOrderHistory
from subscriptions.services.schedule import next_order_date

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")
HUNDRED = Decimal("100")

UPDATABLE_FIELDS = (
    "quantity",
    "frequency",
    "frequency_interval",
    "shipping_address",
    "location",
    "discount_percentage",
    "end_date",
    "notes",
)


class RecurringOrderError(Exception):
    pass


class RecurringOrderStateError(RecurringOrderError):
    pass


class RecurringOrderFailure(RecurringOrderError):
    """Raised inside processing; recorded on the history row."""


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# VISIBILITY / ACCESS
# ============================================================


def visible_recurring_orders(user):
    qs = RecurringOrder.objects.select_related("user", "organization", "location", "product")
    if user_has_capability(user, CAP_RECURRING_MANAGE):
        return qs
    org_ids = organization_ids_for(user) | represented_organization_ids(user)
    return qs.filter(Q(user=user) | Q(organization_id__in=org_ids)).distinct()


def can_modify(user, recurring: RecurringOrder) -> bool:
    if recurring.user_id == user.pk or user_has_capability(user, CAP_RECURRING_MANAGE):
        return True
    return recurring.organization_id is not None and can_manage_organization(user, recurring.organization)


# ============================================================
# CRUD + STATE
# ============================================================


@transaction.atomic
def create_recurring_order(
    user,
    *,
    product,
    quantity: int,
    frequency: str,
    frequency_interval: int = 1,
    organization=None,
    location=None,
    shipping_address=None,
    discount_percentage=Decimal("0.00"),
    start_date=None,
    end_date=None,
    notes: str = "",
) -> RecurringOrder:
    start_date = start_date or timezone.localdate()
    if location is not None and organization is None:
        organization = location.organization

    recurring = RecurringOrder.objects.create(
        user=user,
        product=product,
        quantity=quantity,
        frequency=frequency,
        frequency_interval=frequency_interval or 1,
        organization=organization,
        location=location,
        shipping_address=shipping_address,
        discount_percentage=discount_percentage or Decimal("0.00"),
        start_date=start_date,
        end_date=end_date,
        next_order_date=start_date,
        notes=notes or "",
        status=RecurringOrder.STATUS_ACTIVE,
    )
    logger.info(
        "Recurring order created",
        extra={
            "recurring_order_id": str(recurring.pk),
            "user_id": str(user.pk),
            "product_id": str(product.pk),
            "frequency": frequency,
        },
    )
    return recurring


@transaction.atomic
def update_recurring_order(recurring: RecurringOrder, data: dict) -> RecurringOrder:
    if recurring.status in RecurringOrder.TERMINAL_STATUSES:
        raise RecurringOrderStateError(f"A {recurring.status} recurring order cannot be changed.")
    for name in UPDATABLE_FIELDS:
        if name in data:
            setattr(recurring, name, data[name])
    recurring.save()
    return recurring


def _set_status(recurring: RecurringOrder, target: str, *, allowed_from: set) -> RecurringOrder:
    if recurring.status not in allowed_from:
        raise RecurringOrderStateError(
            f"Recurring order cannot move from '{recurring.status}' to '{target}'."
        )
    recurring.status = target
    recurring.save()
    logger.info(
        "Recurring order status changed",
        extra={"recurring_order_id": str(recurring.pk), "status": target},
    )
    return recurring


def pause_recurring_order(recurring: RecurringOrder) -> RecurringOrder:
    return _set_status(recurring, RecurringOrder.STATUS_PAUSED, allowed_from={RecurringOrder.STATUS_ACTIVE})


def resume_recurring_order(recurring: RecurringOrder, *, today=None) -> RecurringOrder:
    """A date missed while paused moves to today instead of firing a backlog."""
    today = today or timezone.localdate()
    if recurring.status == RecurringOrder.STATUS_PAUSED and recurring.next_order_date < today:
        recurring.next_order_date = today
    return _set_status(recurring, RecurringOrder.STATUS_ACTIVE, allowed_from={RecurringOrder.STATUS_PAUSED})


def cancel_recurring_order(recurring: RecurringOrder) -> RecurringOrder:
    return _set_status(
        recurring,
        RecurringOrder.STATUS_CANCELLED,
        allowed_from={RecurringOrder.STATUS_ACTIVE, RecurringOrder.STATUS_PAUSED},
    )


# ============================================================
# PROCESSING
# ============================================================


@dataclass
class ProcessSummary:
    processed: int = 0
    failed: int = 0
    skipped: int = 0
    expired: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def _price_line(recurring: RecurringOrder) -> dict:
    product = recurring.product
    if not product.is_active:
        raise RecurringOrderFailure("Product is no longer available.")

    quote = resolve_price(
        recurring.user,
        product,
        recurring.quantity,
        location=recurring.location,
        organization=recurring.organization,
    )
    discount = Decimal(recurring.discount_percentage or 0)
    unit_price = _money(quote.price * (HUNDRED - discount) / HUNDRED)
    markup = quote.price - quote.regular_price if quote.is_markup and quote.price > quote.regular_price else 0

    return {
        "product_id": str(product.pk),
        "external_id": product.external_id,
        "name": product.name,
        "quantity": recurring.quantity,
        "price": str(unit_price),
        "retail_price": str(quote.regular_price),
        "cost": str(product.cost_price) if product.cost_price is not None else None,
        "markup": str(_money(markup)),
        "source": quote.source,
    }


def _record_failure(recurring: RecurringOrder, scheduled, message: str) -> RecurringOrderHistory:
    row = (
        RecurringOrderHistory.objects.filter(
            recurring_order=recurring,
            scheduled_date=scheduled,
            status=RecurringOrderHistory.STATUS_FAILED,
        )
        .order_by("-created_at")
        .first()
    )
    if row is None:
        row = RecurringOrderHistory(
            recurring_order=recurring,
            scheduled_date=scheduled,
            status=RecurringOrderHistory.STATUS_FAILED,
        )
    else:
        row.retry_count += 1
    row.processed_date = timezone.now()
    row.error_message = message
    row.save()
    return row


def _advance(recurring: RecurringOrder, scheduled) -> None:
    recurring.next_order_date = next_order_date(scheduled, recurring.frequency, recurring.frequency_interval)
    if recurring.end_date and recurring.next_order_date > recurring.end_date:
        recurring.status = RecurringOrder.STATUS_EXPIRED


@transaction.atomic
def process_recurring_order(recurring_id, *, today) -> str:
    """Returns one of: processed, failed, skipped, expired."""
    recurring = (
        RecurringOrder.objects.select_for_update()
        .select_related("user", "product", "organization", "location", "shipping_address")
        .get(pk=recurring_id)
    )
    if recurring.status != RecurringOrder.STATUS_ACTIVE or recurring.next_order_date > today:
        return "skipped"

    scheduled = recurring.next_order_date

    if recurring.end_date and scheduled > recurring.end_date:
        recurring.status = RecurringOrder.STATUS_EXPIRED
        recurring.save()
        return "expired"

    if not recurring.user.is_active:
        RecurringOrderHistory.objects.create(
            recurring_order=recurring,
            scheduled_date=scheduled,
            status=RecurringOrderHistory.STATUS_SKIPPED,
            processed_date=timezone.now(),
            error_message="Account is inactive.",
        )
        _advance(recurring, scheduled)
        recurring.save()
        return "skipped"

    try:
        with transaction.atomic():
            line = _price_line(recurring)
            subtotal = _money(Decimal(line["price"]) * recurring.quantity)
            tax_rate = Decimal(str((getattr(settings, "CHECKOUT", {}) or {}).get("TAX_RATE", "0.08")))
            order = create_order_from_lines(
                recurring.user,
                [line],
                organization=recurring.organization,
                location=recurring.location,
                tax=_money(subtotal * tax_rate),
                shipping_address=(
                    recurring.shipping_address.as_commerce_address() if recurring.shipping_address_id else {}
                ),
            )
    except (RecurringOrderFailure, PricingError, ValidationError) as e:
        message = "; ".join(e.messages) if isinstance(e, ValidationError) else str(e)
        _record_failure(recurring, scheduled, message)
        logger.warning(
            "Recurring order failed",
            extra={"recurring_order_id": str(recurring.pk), "scheduled_date": str(scheduled), "error": message},
        )
        return "failed"

    RecurringOrderHistory.objects.create(
        recurring_order=recurring,
        order=order,
        scheduled_date=scheduled,
        status=RecurringOrderHistory.STATUS_COMPLETED,
        processed_date=timezone.now(),
        amount=order.subtotal,
    )

    recurring.last_order_date = scheduled
    recurring.total_orders += 1
    _advance(recurring, scheduled)
    recurring.save()

    logger.info(
        "Recurring order processed",
        extra={
            "recurring_order_id": str(recurring.pk),
            "order_id": str(order.pk),
            "next_order_date": str(recurring.next_order_date),
        },
    )
    return "processed"


def process_due(*, today=None) -> ProcessSummary:
    today = today or timezone.localdate()
    summary = ProcessSummary()

    due_ids = list(
        RecurringOrder.objects.filter(status=RecurringOrder.STATUS_ACTIVE, next_order_date__lte=today)
        .order_by("next_order_date")
        .values_list("pk", flat=True)
    )

    for recurring_id in due_ids:
        try:
            outcome = process_recurring_order(recurring_id, today=today)
        except DatabaseError:
            logger.exception("Recurring order processing crashed", extra={"recurring_order_id": str(recurring_id)})
            outcome = "failed"
        setattr(summary, outcome, getattr(summary, outcome) + 1)

    logger.info("Recurring orders run finished", extra={"today": str(today), **summary.as_dict()})
    return summary
