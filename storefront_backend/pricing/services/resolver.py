"""
PATH: pricing/services/resolver.py

CONTRACT PRICE RESOLUTION

Purpose:
- Answer "what does THIS user pay for THIS product at THIS quantity?"

Precedence (first tier with a matching row wins):
    location > organization > individual > regular

Matching row:
- same product
- entity inside the user's scope (see organizations.services.membership)
- min_quantity <= quantity <= max_quantity (NULL max = unbounded)
- effective_date <= at <= expiry_date (NULL expiry = open-ended)
Within a tier the lowest effective price (markup_price over contract_price) wins.

Eligibility:
- anonymous, inactive, pending or rejected accounts get the regular price

Failure mode:
- database errors during lookup are logged and degrade to the regular price
- cache backend errors are logged and the lookup runs uncached
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from django.db import DatabaseError
from django.db.models import F, Q
from django.db.models.functions import Coalesce
from django.utils import timezone

from organizations.services.membership import (
    can_access_location,
    is_member,
    organization_ids_for,
    pinned_location_ids_for,
)
from pricing.models import ContractPrice
from pricing.services.cache import read_quote, store_quote
from pricing.services.exceptions import InvalidQuantityError

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

SOURCE_REGULAR = "regular"
SOURCE_INDIVIDUAL = ContractPrice.TYPE_INDIVIDUAL
SOURCE_ORGANIZATION = ContractPrice.TYPE_ORGANIZATION
SOURCE_LOCATION = ContractPrice.TYPE_LOCATION

# Highest precedence first.
TIER_ORDER = (SOURCE_LOCATION, SOURCE_ORGANIZATION, SOURCE_INDIVIDUAL)


def _money(v) -> Decimal:
    if v is None or v == "":
        return Decimal("0.00")
    return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PriceQuote:
    product_id: str
    external_id: int
    quantity: int
    regular_price: Decimal
    price: Decimal
    source: str = SOURCE_REGULAR
    contract_price_id: str | None = None
    is_markup: bool = False
    min_quantity: int | None = None
    max_quantity: int | None = None

    @property
    def savings(self) -> Decimal:
        """Per-unit difference to the regular price (negative for markups)."""
        return _money(self.regular_price - self.price)

    @property
    def line_total(self) -> Decimal:
        return _money(self.price * self.quantity)

    @property
    def is_contract(self) -> bool:
        return self.source != SOURCE_REGULAR

    def as_dict(self) -> dict:
        data = asdict(self)
        data["regular_price"] = str(self.regular_price)
        data["price"] = str(self.price)
        data["savings"] = str(self.savings)
        data["line_total"] = str(self.line_total)
        return data


@dataclass(frozen=True)
class PricingScope:
    user_id: object
    location_ids: frozenset
    organization_ids: frozenset


def regular_quote(product, quantity: int) -> PriceQuote:
    regular = _money(product.regular_price)
    return PriceQuote(
        product_id=str(product.pk),
        external_id=product.external_id,
        quantity=quantity,
        regular_price=regular,
        price=regular,
    )


def build_scope(user, *, location=None, organization=None) -> PricingScope:
    """
    Explicit context narrows the scope; inaccessible context is ignored.

    - location given + accessible: location tier = {location}, org tier = {location.org}
    - organization given + member: org tier = {organization}
    - nothing given: pinned locations + every membership organization
    """
    location_ids: set = set()
    organization_ids: set = set()

    explicit_location = location is not None and can_access_location(user, location)

    if explicit_location:
        location_ids = {location.pk}
    elif location is None:
        location_ids = pinned_location_ids_for(user)

    if organization is not None:
        if is_member(user, organization) and (
            not explicit_location or location.organization_id == organization.pk
        ):
            organization_ids = {organization.pk}
    elif explicit_location:
        organization_ids = {location.organization_id}
    elif location is None:
        organization_ids = organization_ids_for(user)

    return PricingScope(
        user_id=user.pk,
        location_ids=frozenset(location_ids),
        organization_ids=frozenset(organization_ids),
    )


def _tier_queryset(source: str, product, quantity: int, scope: PricingScope, at):
    qs = ContractPrice.objects.filter(
        product=product,
        pricing_type=source,
        min_quantity__lte=quantity,
        effective_date__lte=at,
    ).filter(
        Q(max_quantity__isnull=True) | Q(max_quantity__gte=quantity),
        Q(expiry_date__isnull=True) | Q(expiry_date__gte=at),
    )

    if source == SOURCE_LOCATION:
        if not scope.location_ids:
            return None
        qs = qs.filter(
            location_id__in=scope.location_ids,
            location__is_active=True,
            location__organization__is_active=True,
        )
    elif source == SOURCE_ORGANIZATION:
        if not scope.organization_ids:
            return None
        qs = qs.filter(organization_id__in=scope.organization_ids, organization__is_active=True)
    else:
        qs = qs.filter(user_id=scope.user_id)

    return qs.annotate(effective=Coalesce(F("markup_price"), F("contract_price"))).order_by(
        "effective", "-created_at"
    )


def _resolve_uncached(user, product, quantity: int, scope: PricingScope, at) -> PriceQuote:
    regular = _money(product.regular_price)

    for source in TIER_ORDER:
        qs = _tier_queryset(source, product, quantity, scope, at)
        if qs is None:
            continue
        row = qs.first()
        if row is None:
            continue
        return PriceQuote(
            product_id=str(product.pk),
            external_id=product.external_id,
            quantity=quantity,
            regular_price=regular,
            price=_money(row.price),
            source=source,
            contract_price_id=str(row.pk),
            is_markup=row.is_markup,
            min_quantity=row.min_quantity,
            max_quantity=row.max_quantity,
        )

    return regular_quote(product, quantity)


def resolve_price(
    user,
    product,
    quantity: int = 1,
    *,
    location=None,
    organization=None,
    at=None,
    use_cache: bool = True,
) -> PriceQuote:
    try:
        quantity = int(quantity)
    except (TypeError, ValueError) as e:
        raise InvalidQuantityError("quantity must be an integer") from e
    if quantity < 1:
        raise InvalidQuantityError("quantity must be at least 1")

    if (
        user is None
        or not getattr(user, "is_authenticated", False)
        or not getattr(user, "is_pricing_eligible", False)
    ):
        return regular_quote(product, quantity)

    # Point-in-time lookups (at=...) never touch the cache.
    cacheable = use_cache and at is None
    at = at or timezone.now()

    key = None
    if cacheable:
        key, cached = read_quote(
            user_id=user.pk,
            product_id=product.pk,
            quantity=quantity,
            location_id=getattr(location, "pk", None),
            organization_id=getattr(organization, "pk", None),
        )
        if cached is not None:
            return cached

    try:
        scope = build_scope(user, location=location, organization=organization)
        quote = _resolve_uncached(user, product, quantity, scope, at)
    except DatabaseError:
        logger.exception(
            "Contract price lookup failed; using regular price",
            extra={"user_id": str(user.pk), "product_id": str(product.pk)},
        )
        return regular_quote(product, quantity)

    if key is not None:
        store_quote(key, quote)
    return quote


def resolve_many(
    user,
    lines: Iterable[tuple],
    *,
    location=None,
    organization=None,
    at=None,
) -> list[PriceQuote]:
    """lines: iterable of (product, quantity)."""
    return [
        resolve_price(user, product, quantity, location=location, organization=organization, at=at)
        for product, quantity in lines
    ]
