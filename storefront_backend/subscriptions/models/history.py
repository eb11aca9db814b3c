import uuid
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models


class RecurringOrderHistory(models.Model):
    """One processing attempt of a recurring order for a scheduled date."""

    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_SKIPPED = "skipped"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_SKIPPED, "Skipped"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    recurring_order = models.ForeignKey(
        "subscriptions.RecurringOrder",
        on_delete=models.CASCADE,
        related_name="history",
    )
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="recurring_history",
    )

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    scheduled_date = models.DateField()
    processed_date = models.DateTimeField(null=True, blank=True)
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0"))],
    )
    error_message = models.TextField(blank=True)
    retry_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-scheduled_date", "-created_at"]
        indexes = [
            models.Index(fields=["recurring_order", "scheduled_date"], name="idx_recurring_hist_sched"),
            models.Index(fields=["status"], name="idx_recurring_hist_status"),
        ]

    def __str__(self):
        return f"{self.recurring_order_id} @ {self.scheduled_date} ({self.status})"
