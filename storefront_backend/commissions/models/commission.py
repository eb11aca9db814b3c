"""
PATH: commissions/models/commission.py

One commission row per order. Amounts are computed by
commissions.services.calculator and frozen once approved.
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models


class Commission(models.Model):
    STATUS_PENDING = "pending"
    STATUS_APPROVED = "approved"
    STATUS_PAID = "paid"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_APPROVED, "Approved"),
        (STATUS_PAID, "Paid"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.OneToOneField("orders.Order", on_delete=models.CASCADE, related_name="commission")
    sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="commissions",
    )
    distributor = models.ForeignKey(
        "commissions.Distributor",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="commissions",
    )

    order_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_margin = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    commission_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    sales_rep_commission = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    distributor_commission = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    commission_split_type = models.CharField(max_length=32, blank=True, default="")
    margin_details = models.JSONField(default=list, blank=True)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    notes = models.TextField(blank=True, default="")

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=120, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["sales_rep", "status"], name="idx_commission_rep_status"),
        ]

    def __str__(self):
        return f"{self.order} | {self.sales_rep} | {self.commission_amount} | {self.status}"
