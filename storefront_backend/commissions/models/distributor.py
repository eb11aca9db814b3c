"""
PATH: commissions/models/distributor.py

DISTRIBUTOR HIERARCHY

- Distributor: a reseller account with its own base commission rate.
- DistributorSalesRep: how a distributor shares commission with one of its reps.

Split types:
- none                        rep keeps the whole commission
- percentage_of_distributor   rep gets sales_rep_rate % of the commission, distributor the rest
- fixed_with_override         per line: rep gets sales_rep_rate % of margin,
                              distributor gets distributor_override_rate % of margin
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

RATE_VALIDATORS = [MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))]


class Distributor(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="distributor_profile",
    )
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, unique=True)
    commission_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("5.00"), validators=RATE_VALIDATORS
    )
    contact_email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def clean(self):
        self.code = (self.code or "").strip().upper()
        if not self.code:
            raise ValidationError({"code": "code is required"})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} ({self.code})"


class DistributorSalesRep(models.Model):
    SPLIT_NONE = "none"
    SPLIT_PERCENTAGE = "percentage_of_distributor"
    SPLIT_FIXED_OVERRIDE = "fixed_with_override"

    SPLIT_CHOICES = [
        (SPLIT_NONE, "None"),
        (SPLIT_PERCENTAGE, "Percentage of distributor"),
        (SPLIT_FIXED_OVERRIDE, "Fixed with override"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    distributor = models.ForeignKey(Distributor, on_delete=models.CASCADE, related_name="sales_reps")
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="distributor_links",
    )
    commission_split_type = models.CharField(max_length=32, choices=SPLIT_CHOICES, default=SPLIT_NONE)
    sales_rep_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("100.00"), validators=RATE_VALIDATORS
    )
    distributor_override_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00"), validators=RATE_VALIDATORS
    )
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["distributor", "sales_rep"],
                name="uniq_distributor_sales_rep",
            )
        ]

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.distributor} -> {self.sales_rep} ({self.commission_split_type})"
