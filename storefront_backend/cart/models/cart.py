"""
PATH: cart/models/cart.py

CART MODEL

Purpose:
- Server-side storefront cart (temporary, mutable).
- Carries the pricing context (organization / location) the customer shops under.

Rules:
- One active cart per user.
- Location, when set, must belong to the selected organization.
- Handed to checkout as a snapshot; cleared once the order completes.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Sum

User = settings.AUTH_USER_MODEL


class Cart(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="carts",
    )

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="carts",
        help_text="Pricing context. Optional.",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="carts",
    )

    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(is_active=True),
                name="one_active_cart_per_user",
            )
        ]

    def clean(self):
        if self.user_id is None:
            raise ValidationError({"user": "user is required"})
        if (
            self.location_id
            and self.organization_id
            and self.location.organization_id != self.organization_id
        ):
            raise ValidationError({"location": "Location does not belong to the selected organization."})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    @property
    def item_count(self) -> int:
        total = self.items.aggregate(total=Sum("quantity")).get("total")
        return int(total or 0)

    @property
    def subtotal_amount(self) -> Decimal:
        total = (
            self.items.annotate(line_total=F("quantity") * F("unit_price"))
            .aggregate(total=Sum("line_total"))
            .get("total")
        )
        return total or Decimal("0.00")

    @property
    def is_empty(self) -> bool:
        return not self.items.exists()

    def __str__(self):
        status = "ACTIVE" if self.is_active else "CLOSED"
        return f"Cart {self.id} | {self.user} | {status}"
