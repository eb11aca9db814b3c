"""
PATH: commissions/models/assignment.py

Sales rep <-> organization assignment. At most one row per (organization, rep);
removal deactivates the row so historic commissions keep their link.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models

from .distributor import RATE_VALIDATORS, Distributor


class OrganizationSalesRep(models.Model):
    DEFAULT_RATE = Decimal("5.00")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="sales_reps",
    )
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="represented_organizations",
    )
    distributor = models.ForeignKey(
        Distributor,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="organization_assignments",
    )
    commission_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=DEFAULT_RATE, validators=RATE_VALIDATORS
    )
    is_active = models.BooleanField(default=True)
    assigned_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-assigned_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "sales_rep"],
                name="uniq_org_sales_rep",
            )
        ]

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.sales_rep} @ {self.organization} ({self.commission_rate}%)"
