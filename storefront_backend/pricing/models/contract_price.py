"""
PATH: pricing/models/contract_price.py

CONTRACT PRICE (per-product override granted to a user, organization or location)

Rules (enforced in clean() and re-checked by pricing.services.contracts):
- exactly the entity matching pricing_type is set (user / organization / location)
- at least one of contract_price / markup_price is set
- markup_price, when set, overrides contract_price and requires product.allow_markup
- min_quantity >= 1; max_quantity NULL means unbounded, else >= min_quantity
- expiry_date, when set, is after effective_date
- tiers of the same (pricing_type, entity, product) must not overlap in quantity
  while their date windows overlap
- a price below product.cost_price needs allow_below_cost + a non-blank override_reason
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone

UNBOUNDED_QUANTITY = 999_999_999


class ContractPrice(models.Model):
    TYPE_INDIVIDUAL = "individual"
    TYPE_ORGANIZATION = "organization"
    TYPE_LOCATION = "location"

    TYPE_CHOICES = [
        (TYPE_INDIVIDUAL, "Individual"),
        (TYPE_ORGANIZATION, "Organization"),
        (TYPE_LOCATION, "Location"),
    ]

    # pricing_type -> FK attribute holding the entity
    ENTITY_FIELD = {
        TYPE_INDIVIDUAL: "user",
        TYPE_ORGANIZATION: "organization",
        TYPE_LOCATION: "location",
    }

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    pricing_type = models.CharField(max_length=20, choices=TYPE_CHOICES, db_index=True)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="contract_prices",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="contract_prices",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="contract_prices",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="contract_prices",
    )

    contract_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    markup_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    min_quantity = models.PositiveIntegerField(default=1)
    max_quantity = models.PositiveIntegerField(null=True, blank=True)

    effective_date = models.DateTimeField(default=timezone.now)
    expiry_date = models.DateTimeField(null=True, blank=True)

    allow_below_cost = models.BooleanField(default=False)
    override_reason = models.TextField(blank=True)
    notes = models.TextField(blank=True)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["product__name", "pricing_type", "min_quantity"]
        indexes = [
            models.Index(fields=["product", "pricing_type"], name="idx_cp_product_type"),
            models.Index(fields=["user", "product"], name="idx_cp_user_product"),
            models.Index(fields=["organization", "product"], name="idx_cp_org_product"),
            models.Index(fields=["location", "product"], name="idx_cp_location_product"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(contract_price__isnull=False) | Q(markup_price__isnull=False),
                name="cp_price_required",
            ),
            models.CheckConstraint(
                condition=Q(min_quantity__gte=1),
                name="cp_min_quantity_positive",
            ),
            models.CheckConstraint(
                condition=Q(max_quantity__isnull=True) | Q(max_quantity__gte=models.F("min_quantity")),
                name="cp_quantity_range_valid",
            ),
            models.CheckConstraint(
                condition=(
                    Q(
                        pricing_type="individual",
                        user__isnull=False,
                        organization__isnull=True,
                        location__isnull=True,
                    )
                    | Q(
                        pricing_type="organization",
                        user__isnull=True,
                        organization__isnull=False,
                        location__isnull=True,
                    )
                    | Q(
                        pricing_type="location",
                        user__isnull=True,
                        organization__isnull=True,
                        location__isnull=False,
                    )
                ),
                name="cp_entity_matches_type",
            ),
        ]

    # -----------------------------
    # derived
    # -----------------------------
    @property
    def price(self) -> Decimal | None:
        """Effective row price: markup_price wins over contract_price."""
        if self.markup_price is not None:
            return Decimal(self.markup_price)
        if self.contract_price is not None:
            return Decimal(self.contract_price)
        return None

    @property
    def is_markup(self) -> bool:
        return self.markup_price is not None

    @property
    def entity_field(self) -> str | None:
        return self.ENTITY_FIELD.get(self.pricing_type)

    @property
    def entity_id(self):
        field = self.entity_field
        return getattr(self, f"{field}_id") if field else None

    def covers_quantity(self, quantity: int) -> bool:
        upper = self.max_quantity if self.max_quantity is not None else UNBOUNDED_QUANTITY
        return self.min_quantity <= quantity <= upper

    def is_live(self, at=None) -> bool:
        at = at or timezone.now()
        if self.effective_date and self.effective_date > at:
            return False
        return self.expiry_date is None or self.expiry_date >= at

    # -----------------------------
    # validation
    # -----------------------------
    def overlapping_tiers(self):
        """
        Same (pricing_type, entity, product) rows whose quantity ranges AND
        date windows intersect this row's.
        """
        field = self.entity_field
        if not field or not self.product_id or self.entity_id is None:
            return ContractPrice.objects.none()

        new_min = self.min_quantity or 1
        new_max = self.max_quantity if self.max_quantity is not None else UNBOUNDED_QUANTITY

        qs = ContractPrice.objects.filter(
            product_id=self.product_id,
            pricing_type=self.pricing_type,
            **{f"{field}_id": self.entity_id},
        ).filter(
            Q(min_quantity__lte=new_max),
            Q(max_quantity__isnull=True) | Q(max_quantity__gte=new_min),
        )

        start = self.effective_date or timezone.now()
        qs = qs.filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=start))
        if self.expiry_date is not None:
            qs = qs.filter(effective_date__lte=self.expiry_date)

        if self.pk and not self._state.adding:
            qs = qs.exclude(pk=self.pk)
        return qs

    def below_cost_prices(self) -> list[tuple[str, Decimal]]:
        cost = getattr(self.product, "cost_price", None) if self.product_id else None
        if cost is None:
            return []
        cost = Decimal(cost)
        offenders = []
        for label in ("contract_price", "markup_price"):
            value = getattr(self, label)
            if value is not None and Decimal(value) < cost:
                offenders.append((label, Decimal(value)))
        return offenders

    def clean(self):
        errors: dict[str, list[str]] = {}

        field = self.entity_field
        if field is None:
            errors.setdefault("pricing_type", []).append("Unknown pricing type.")
        else:
            if getattr(self, f"{field}_id") is None:
                errors.setdefault(field, []).append(f"{field} is required for {self.pricing_type} pricing.")
            for other in set(self.ENTITY_FIELD.values()) - {field}:
                if getattr(self, f"{other}_id") is not None:
                    errors.setdefault(other, []).append(
                        f"{other} must be empty for {self.pricing_type} pricing."
                    )

        if self.contract_price is None and self.markup_price is None:
            errors.setdefault("contract_price", []).append(
                "Either contract_price or markup_price must be set."
            )
        for label in ("contract_price", "markup_price"):
            value = getattr(self, label)
            if value is not None and Decimal(value) < 0:
                errors.setdefault(label, []).append("Price must be non-negative.")

        if self.markup_price is not None and self.product_id and not self.product.allow_markup:
            errors.setdefault("markup_price", []).append(
                f"Product {self.product.external_id} does not allow markup pricing."
            )

        if self.min_quantity is not None and self.min_quantity < 1:
            errors.setdefault("min_quantity", []).append("min_quantity must be at least 1.")
        if (
            self.max_quantity is not None
            and self.min_quantity is not None
            and self.max_quantity < self.min_quantity
        ):
            errors.setdefault("max_quantity", []).append(
                "max_quantity must be greater than or equal to min_quantity."
            )

        if self.expiry_date and self.effective_date and self.expiry_date <= self.effective_date:
            errors.setdefault("expiry_date", []).append("expiry_date must be after effective_date.")

        self.override_reason = (self.override_reason or "").strip()
        if self.allow_below_cost and not self.override_reason:
            errors.setdefault("override_reason", []).append(
                "Override reason required when setting prices below cost."
            )
        if not self.allow_below_cost:
            for label, value in self.below_cost_prices():
                errors.setdefault(label, []).append(
                    f"{label} ({value}) is below product cost ({self.product.cost_price})."
                )

        if errors:
            raise ValidationError(errors)

        if self.overlapping_tiers().exists():
            raise ValidationError(
                "Pricing conflict: quantity range overlaps an existing tier for this product and entity.",
                code="pricing_conflict",
            )

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        upper = self.max_quantity if self.max_quantity is not None else "+"
        return f"{self.product} {self.pricing_type} {self.price} [{self.min_quantity}-{upper}]"
