"""
PATH: subscriptions/models/recurring_order.py

RECURRING ORDER (product subscription)

Rules:
- next_order_date starts at start_date and advances by frequency * interval
- location must belong to organization when both are set
- end_date (if set) cannot precede start_date
- status: active <-> paused; cancelled / expired are terminal
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone


class RecurringOrder(models.Model):
    FREQ_WEEKLY = "weekly"
    FREQ_BIWEEKLY = "biweekly"
    FREQ_MONTHLY = "monthly"
    FREQ_QUARTERLY = "quarterly"
    FREQ_YEARLY = "yearly"

    FREQUENCY_CHOICES = [
        (FREQ_WEEKLY, "Weekly"),
        (FREQ_BIWEEKLY, "Every 2 weeks"),
        (FREQ_MONTHLY, "Monthly"),
        (FREQ_QUARTERLY, "Quarterly"),
        (FREQ_YEARLY, "Yearly"),
    ]

    STATUS_ACTIVE = "active"
    STATUS_PAUSED = "paused"
    STATUS_CANCELLED = "cancelled"
    STATUS_EXPIRED = "expired"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_PAUSED, "Paused"),
        (STATUS_CANCELLED, "Cancelled"),
        (STATUS_EXPIRED, "Expired"),
    ]

    TERMINAL_STATUSES = {STATUS_CANCELLED, STATUS_EXPIRED}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="recurring_orders",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="recurring_orders",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recurring_orders",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.CASCADE,
        related_name="recurring_orders",
    )
    shipping_address = models.ForeignKey(
        "users.CustomerAddress",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recurring_orders",
    )

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    frequency = models.CharField(max_length=20, choices=FREQUENCY_CHOICES)
    frequency_interval = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_ACTIVE)

    start_date = models.DateField(default=timezone.localdate)
    end_date = models.DateField(null=True, blank=True)
    next_order_date = models.DateField()
    last_order_date = models.DateField(null=True, blank=True)

    discount_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    total_orders = models.PositiveIntegerField(default=0)
    notes = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "next_order_date"], name="idx_recurring_due"),
            models.Index(fields=["user", "status"], name="idx_recurring_user_status"),
        ]

    def clean(self):
        errors = {}
        if self.location_id and self.organization_id and self.location.organization_id != self.organization_id:
            errors["location"] = "Location does not belong to the selected organization."
        if self.end_date and self.start_date and self.end_date < self.start_date:
            errors["end_date"] = "end_date cannot be before start_date."
        if self.shipping_address_id and self.shipping_address.user_id != self.user_id:
            errors["shipping_address"] = "Address belongs to another account."
        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        if self.next_order_date is None:
            self.next_order_date = self.start_date
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def frequency_display(self) -> str:
        n = int(self.frequency_interval or 1)
        if n == 1:
            return {
                self.FREQ_WEEKLY: "Every week",
                self.FREQ_BIWEEKLY: "Every 2 weeks",
                self.FREQ_MONTHLY: "Every month",
                self.FREQ_QUARTERLY: "Every 3 months",
                self.FREQ_YEARLY: "Every year",
            }.get(self.frequency, self.frequency)
        return {
            self.FREQ_WEEKLY: f"Every {n} weeks",
            self.FREQ_BIWEEKLY: f"Every {n * 2} weeks",
            self.FREQ_MONTHLY: f"Every {n} months",
            self.FREQ_QUARTERLY: f"Every {n * 3} months",
            self.FREQ_YEARLY: f"Every {n} years",
        }.get(self.frequency, f"{self.frequency} ({n}x)")

    def __str__(self):
        return f"{self.user} | {self.product} x{self.quantity} | {self.frequency_display}"
