"""
PATH: checkout/services/checkout.py

CHECKOUT SESSION ORCHESTRATOR

Flow:
1) create_session        price the cart server-side and snapshot it
2) create_cart_with_retry  create the BigCommerce cart           -> step address_entry
3) process_checkout      attach billing + shipping (checkout id)  -> step payment
4) complete_checkout     create the internal Order               -> step confirmation

Retry policy (steps 2, 3 and the offline order placement in 4):
- up to CHECKOUT["MAX_RETRIES"] retries after the first attempt
- backoff RETRY_BASE_DELAY * 2**attempt seconds between attempts
- only "transient" errors are retried (see is_retryable); others stop at once
- every failed attempt is appended to session.error_log
- exhausting the retries marks the session failed with last_error

recover_session resumes a session from whatever step it reached.
"""

from __future__ import annotations

import logging
import re
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable

from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from cart.models import Cart
from cart.services.cart import deactivate_cart
from checkout.models import CheckoutSession
from commerce.bigcommerce import get_client
from commerce.exceptions import CommerceError
from commissions.services.calculator import record_commission_for_order
from orders.models import Order
from orders.services.orders import create_order_from_session
from pricing.services.resolver import resolve_price
from products.models import Product
from users.models import CustomerAddress

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

RETRYABLE_STATUSES = frozenset({429, 502, 503, 504})

# Fallback for errors without an HTTP status (network failures, plain messages).
RETRYABLE_PATTERNS = (
    re.compile(r"\bnetwork\b", re.IGNORECASE),
    re.compile(r"\btime(?:d )?out\b", re.IGNORECASE),
    re.compile(r"ECONNREFUSED", re.IGNORECASE),
    re.compile(r"ETIMEDOUT", re.IGNORECASE),
    re.compile(r"\bHTTP (?:429|50[234])\b"),
    re.compile(r"\brate limit", re.IGNORECASE),
    re.compile(r"\btoo many requests\b", re.IGNORECASE),
)


# ============================================================
# ERRORS / RESULTS
# ============================================================


class CheckoutError(Exception):
    pass


class EmptyCheckoutError(CheckoutError):
    pass


class IdempotencyConflictError(CheckoutError):
    """Idempotency key already used by another account."""


class CheckoutStateError(CheckoutError):
    pass


class AddressNotFoundError(CheckoutError):
    pass


@dataclass
class CheckoutResult:
    success: bool
    session_id: str | None = None
    cart_id: str | None = None
    checkout_id: str | None = None
    order_id: str | None = None
    error: str | None = None
    can_retry: bool = False

    def as_dict(self) -> dict:
        return asdict(self)


# ============================================================
# HELPERS
# ============================================================


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


def _cfg() -> dict:
    cfg = getattr(settings, "CHECKOUT", {}) or {}
    return {
        "TAX_RATE": Decimal(str(cfg.get("TAX_RATE", "0.08"))),
        "CURRENCY": cfg.get("CURRENCY", "USD"),
        "SESSION_TTL_HOURS": int(cfg.get("SESSION_TTL_HOURS", 24)),
        "MAX_RETRIES": int(cfg.get("MAX_RETRIES", 3)),
        "RETRY_BASE_DELAY": float(cfg.get("RETRY_BASE_DELAY", 1.0)),
    }


def is_retryable(error) -> bool:
    """
    A platform status decides first: 429/502/503/504 retry, any other status
    does not. Errors without a status are classified by their message.
    """
    status = getattr(error, "status", None)
    if status is not None:
        return status in RETRYABLE_STATUSES
    message = str(error or "")
    return any(pattern.search(message) for pattern in RETRYABLE_PATTERNS)


def _log_error(session: CheckoutSession, step: str, error) -> dict:
    entry = {
        "timestamp": timezone.now().isoformat(),
        "step": step,
        "error": str(error) or "Unknown error",
        "retryable": is_retryable(error),
    }
    session.error_log = [*(session.error_log or []), entry]
    session.last_error = entry["error"]
    session.save(update_fields=["error_log", "last_error", "updated_at"])
    return entry


def _run_with_retry(session: CheckoutSession, step: str, operation: Callable, *, sleep: Callable):
    """
    Returns (result, None) on success or (None, last_error) once retries are
    exhausted or a non-retryable error occurs.
    """
    cfg = _cfg()
    last_error = None

    for attempt in range(cfg["MAX_RETRIES"] + 1):
        session.status = CheckoutSession.STATUS_PROCESSING
        session.retry_count = attempt
        session.save(update_fields=["status", "retry_count", "updated_at"])

        try:
            return operation(), None
        except CommerceError as e:
            last_error = e
            entry = _log_error(session, step, e)
            logger.warning(
                "Checkout step failed",
                extra={
                    "session_id": str(session.pk),
                    "step": step,
                    "attempt": attempt + 1,
                    "retryable": entry["retryable"],
                    "error": entry["error"],
                },
            )
            if entry["retryable"] and attempt < cfg["MAX_RETRIES"]:
                sleep(cfg["RETRY_BASE_DELAY"] * (2**attempt))
                continue
            break

    session.status = CheckoutSession.STATUS_FAILED
    session.last_error = str(last_error) if last_error else f"{step} failed after retries"
    session.save(update_fields=["status", "last_error", "updated_at"])
    return None, last_error


def _failure(session: CheckoutSession, error, *, fallback: str) -> CheckoutResult:
    return CheckoutResult(
        success=False,
        session_id=str(session.pk),
        error=str(error) if error else fallback,
        can_retry=is_retryable(error),
    )


def _commerce_line_items(session: CheckoutSession) -> list[dict]:
    return [
        {
            "product_id": int(line["external_id"]),
            "quantity": int(line["quantity"]),
            "list_price": str(line["price"]),
        }
        for line in session.cart_items
    ]


# ============================================================
# SESSION CREATION
# ============================================================


def _snapshot_line(user, product: Product, quantity: int, *, location, organization) -> dict:
    quote = resolve_price(user, product, quantity, location=location, organization=organization)
    markup = Decimal("0.00")
    if quote.is_markup and quote.price > quote.regular_price:
        markup = quote.price - quote.regular_price
    return {
        "product_id": str(product.pk),
        "external_id": product.external_id,
        "name": product.name,
        "image_url": product.image_url,
        "quantity": quantity,
        "price": str(quote.price),
        "retail_price": str(quote.regular_price),
        "cost": str(product.cost_price) if product.cost_price is not None else None,
        "markup": str(_money(markup)),
        "source": quote.source,
    }


def _session_for_key(user, idempotency_key: str):
    existing = CheckoutSession.objects.filter(idempotency_key=idempotency_key).first()
    if existing is not None and existing.user_id != user.pk:
        raise IdempotencyConflictError("Idempotency key already used.")
    return existing


@transaction.atomic
def create_session(
    user,
    *,
    items: list[tuple] | None = None,
    cart: Cart | None = None,
    organization=None,
    location=None,
    payment_method: str = CheckoutSession.PAYMENT_ONLINE,
    idempotency_key: str | None = None,
) -> tuple[CheckoutSession, bool]:
    """
    items: [(Product, quantity)], or pass the user's Cart.
    Returns (session, created). Re-using an idempotency key returns the
    existing session of the same user.
    """
    if idempotency_key:
        existing = _session_for_key(user, idempotency_key)
        if existing is not None:
            return existing, False

    if items is None and cart is not None:
        items = [(item.product, item.quantity) for item in cart.items.select_related("product")]
        organization = organization or cart.organization
        location = location or cart.location

    if not items:
        raise EmptyCheckoutError("Cannot check out an empty cart.")

    if location is not None and organization is None:
        organization = location.organization

    lines = [
        _snapshot_line(user, product, int(quantity), location=location, organization=organization)
        for product, quantity in items
    ]

    cfg = _cfg()
    subtotal = _money(sum(Decimal(line["price"]) * line["quantity"] for line in lines))
    tax = _money(subtotal * cfg["TAX_RATE"])
    shipping = Decimal("0.00")
    total = _money(subtotal + tax + shipping)

    try:
        with transaction.atomic():
            session = CheckoutSession.objects.create(
                user=user,
                organization=organization,
                location=location,
                cart_items=lines,
                payment_method=payment_method,
                status=CheckoutSession.STATUS_PENDING,
                step=CheckoutSession.STEP_CART_CREATION,
                subtotal=subtotal,
                tax=tax,
                shipping=shipping,
                total=total,
                currency=cfg["CURRENCY"],
                idempotency_key=idempotency_key or str(uuid.uuid4()),
                error_log=[],
                retry_count=0,
                expires_at=timezone.now() + timedelta(hours=cfg["SESSION_TTL_HOURS"]),
            )
    except IntegrityError:
        # A concurrent request with the same key won the insert.
        existing = _session_for_key(user, idempotency_key) if idempotency_key else None
        if existing is None:
            raise
        return existing, False

    logger.info(
        "Checkout session created",
        extra={
            "session_id": str(session.pk),
            "user_id": str(user.pk),
            "lines": len(lines),
            "total": str(total),
        },
    )
    return session, True


# ============================================================
# EXTERNAL STEPS
# ============================================================


def create_cart_with_retry(session: CheckoutSession, *, client=None, sleep: Callable | None = None) -> CheckoutResult:
    client = client or get_client()
    sleep = sleep or time.sleep
    line_items = _commerce_line_items(session)

    cart, error = _run_with_retry(
        session,
        CheckoutSession.STEP_CART_CREATION,
        lambda: client.create_cart(line_items),
        sleep=sleep,
    )
    if cart is None:
        return _failure(session, error, fallback="Failed to create cart")

    session.cart_id = str(cart["id"])
    session.step = CheckoutSession.STEP_ADDRESS_ENTRY
    redirect_urls = cart.get("redirect_urls") or {}
    if redirect_urls:
        session.metadata = {**(session.metadata or {}), "redirect_urls": redirect_urls}
    session.save(update_fields=["cart_id", "step", "metadata", "updated_at"])

    logger.info("Checkout cart created", extra={"session_id": str(session.pk), "cart_id": session.cart_id})
    return CheckoutResult(success=True, session_id=str(session.pk), cart_id=session.cart_id)


def process_checkout(
    session: CheckoutSession,
    *,
    billing_address: dict,
    shipping_address: dict,
    client=None,
    sleep: Callable | None = None,
) -> CheckoutResult:
    client = client or get_client()
    sleep = sleep or time.sleep

    session.billing_address = billing_address or {}
    session.shipping_address = shipping_address or billing_address or {}
    session.save(update_fields=["billing_address", "shipping_address", "updated_at"])

    if not session.cart_id:
        cart_result = create_cart_with_retry(session, client=client, sleep=sleep)
        if not cart_result.success:
            return cart_result

    checkout, error = _run_with_retry(
        session,
        "checkout",
        lambda: client.create_checkout(session.cart_id, session.billing_address, session.shipping_address),
        sleep=sleep,
    )
    if checkout is None:
        return _failure(session, error, fallback="Checkout failed")

    session.checkout_id = str(checkout["id"])
    session.step = CheckoutSession.STEP_PAYMENT
    session.save(update_fields=["checkout_id", "step", "updated_at"])

    return CheckoutResult(
        success=True,
        session_id=str(session.pk),
        cart_id=session.cart_id,
        checkout_id=session.checkout_id,
    )


# ============================================================
# COMPLETION
# ============================================================


def _existing_order(session: CheckoutSession):
    return Order.objects.filter(checkout_session=session).first()


def complete_checkout(
    session: CheckoutSession,
    *,
    external_order_id: str | None = None,
    client=None,
    sleep: Callable | None = None,
) -> CheckoutResult:
    """
    Idempotent: completing twice returns the same order.

    Without external_order_id the order is placed on the platform from the
    checkout (offline payment).
    """
    order = _existing_order(session)
    if order is not None and session.status == CheckoutSession.STATUS_COMPLETED:
        return CheckoutResult(
            success=True,
            session_id=str(session.pk),
            cart_id=session.cart_id or None,
            checkout_id=session.checkout_id or None,
            order_id=str(order.pk),
        )

    if session.status == CheckoutSession.STATUS_ABANDONED:
        return CheckoutResult(
            success=False, session_id=str(session.pk), error="Session abandoned", can_retry=False
        )

    if session.is_expired:
        _mark_abandoned(session)
        return CheckoutResult(
            success=False, session_id=str(session.pk), error="Session expired", can_retry=False
        )

    # An order only exists once the platform checkout reached payment.
    if not session.checkout_id:
        return CheckoutResult(
            success=False, session_id=str(session.pk), error="No checkout ID found", can_retry=False
        )
    if session.step != CheckoutSession.STEP_PAYMENT:
        return CheckoutResult(
            success=False,
            session_id=str(session.pk),
            error=f"Checkout is at step '{session.step}', not payment",
            can_retry=False,
        )

    if not external_order_id:
        client = client or get_client()
        placed, error = _run_with_retry(
            session,
            CheckoutSession.STEP_CONFIRMATION,
            lambda: client.create_order(session.checkout_id),
            sleep=sleep or time.sleep,
        )
        if placed is None:
            return _failure(session, error, fallback="Failed to place order")
        external_order_id = str(placed.get("id") or "")

    try:
        with transaction.atomic():
            order = create_order_from_session(session, external_order_id=external_order_id)

            session.status = CheckoutSession.STATUS_COMPLETED
            session.step = CheckoutSession.STEP_CONFIRMATION
            session.completed_at = timezone.now()
            session.metadata = {**(session.metadata or {}), "external_order_id": external_order_id}
            session.save()

            cart = Cart.objects.filter(user=session.user, is_active=True).first()
            if cart is not None:
                deactivate_cart(cart)

            record_commission_for_order(order)
    except DatabaseError as e:
        logger.exception("Checkout completion failed", extra={"session_id": str(session.pk)})
        session.refresh_from_db()
        session.status = CheckoutSession.STATUS_FAILED
        session.last_error = f"Failed to complete checkout: {e}"
        session.save(update_fields=["status", "last_error", "updated_at"])
        return CheckoutResult(
            success=False, session_id=str(session.pk), error=session.last_error, can_retry=True
        )

    logger.info(
        "Checkout completed",
        extra={
            "session_id": str(session.pk),
            "order_id": str(order.pk),
            "external_order_id": external_order_id,
        },
    )
    return CheckoutResult(
        success=True,
        session_id=str(session.pk),
        cart_id=session.cart_id or None,
        checkout_id=session.checkout_id or None,
        order_id=str(order.pk),
    )


# ============================================================
# RECOVERY / HOUSEKEEPING
# ============================================================


def _mark_abandoned(session: CheckoutSession) -> None:
    session.status = CheckoutSession.STATUS_ABANDONED
    session.abandoned_at = timezone.now()
    session.save(update_fields=["status", "abandoned_at", "updated_at"])


def recover_session(session: CheckoutSession, *, client=None, sleep: Callable | None = None) -> CheckoutResult:
    if session.status == CheckoutSession.STATUS_COMPLETED:
        order = _existing_order(session)
        return CheckoutResult(
            success=True,
            session_id=str(session.pk),
            order_id=str(order.pk) if order else None,
        )

    if session.status == CheckoutSession.STATUS_ABANDONED:
        return CheckoutResult(
            success=False, session_id=str(session.pk), error="Session abandoned", can_retry=False
        )

    if session.is_expired:
        _mark_abandoned(session)
        return CheckoutResult(
            success=False, session_id=str(session.pk), error="Session expired", can_retry=False
        )

    if session.step == CheckoutSession.STEP_CART_CREATION:
        return create_cart_with_retry(session, client=client, sleep=sleep)

    if session.step in (CheckoutSession.STEP_ADDRESS_ENTRY, CheckoutSession.STEP_PAYMENT):
        if not session.cart_id:
            return CheckoutResult(
                success=False, session_id=str(session.pk), error="No cart ID found", can_retry=True
            )
        if session.status == CheckoutSession.STATUS_FAILED:
            session.status = CheckoutSession.STATUS_PROCESSING
            session.save(update_fields=["status", "updated_at"])
        return CheckoutResult(
            success=True,
            session_id=str(session.pk),
            cart_id=session.cart_id,
            checkout_id=session.checkout_id or None,
        )

    if session.step == CheckoutSession.STEP_CONFIRMATION:
        return CheckoutResult(success=True, session_id=str(session.pk))

    return CheckoutResult(
        success=False, session_id=str(session.pk), error="Unknown session state", can_retry=False
    )


def abandon_session(session: CheckoutSession) -> CheckoutSession:
    if session.status == CheckoutSession.STATUS_COMPLETED:
        raise CheckoutStateError("Completed sessions cannot be abandoned.")
    if session.status != CheckoutSession.STATUS_ABANDONED:
        _mark_abandoned(session)
        logger.info("Checkout session abandoned", extra={"session_id": str(session.pk)})
    return session


def active_sessions(user):
    return CheckoutSession.objects.filter(
        user=user,
        status__in=CheckoutSession.ACTIVE_STATUSES,
        expires_at__gt=timezone.now(),
    ).order_by("-created_at")


def expire_stale_sessions(*, now=None) -> int:
    now = now or timezone.now()
    count = CheckoutSession.objects.filter(
        status__in=[
            CheckoutSession.STATUS_PENDING,
            CheckoutSession.STATUS_PROCESSING,
            CheckoutSession.STATUS_FAILED,
        ],
        expires_at__lt=now,
    ).update(status=CheckoutSession.STATUS_ABANDONED, abandoned_at=now, updated_at=now)
    if count:
        logger.info("Expired stale checkout sessions", extra={"count": count})
    return count


def resolve_address(user, *, address: dict | None = None, address_id=None) -> dict:
    """Inline address payload, or one of the user's saved addresses."""
    if address_id:
        saved = CustomerAddress.objects.filter(pk=address_id, user=user, is_active=True).first()
        if saved is None:
            raise AddressNotFoundError("Address not found.")
        return saved.as_commerce_address()
    payload = dict(address or {})
    if payload and not payload.get("email"):
        payload["email"] = user.email
    return payload
