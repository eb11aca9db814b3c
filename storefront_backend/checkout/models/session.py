"""
PATH: checkout/models/session.py

CHECKOUT SESSION

Tracks one customer's in-progress external (BigCommerce) checkout so a failed
step can be retried or resumed instead of starting over.

Status:  pending -> processing -> completed
                               -> failed     (retry via recover)
                               -> abandoned  (user action or expiry)

Step:    cart_creation -> address_entry -> payment -> confirmation

cart_items is a server-priced snapshot taken when the session is created:
    [{"product_id", "external_id", "name", "quantity", "price",
      "retail_price", "cost", "markup", "source", "image_url"}]
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone


class CheckoutSession(models.Model):
    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"
    STATUS_ABANDONED = "abandoned"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
        (STATUS_ABANDONED, "Abandoned"),
    ]

    ACTIVE_STATUSES = (STATUS_PENDING, STATUS_PROCESSING)

    STEP_CART_CREATION = "cart_creation"
    STEP_ADDRESS_ENTRY = "address_entry"
    STEP_PAYMENT = "payment"
    STEP_CONFIRMATION = "confirmation"

    STEP_CHOICES = [
        (STEP_CART_CREATION, "Cart creation"),
        (STEP_ADDRESS_ENTRY, "Address entry"),
        (STEP_PAYMENT, "Payment"),
        (STEP_CONFIRMATION, "Confirmation"),
    ]

    PAYMENT_ONLINE = "online"
    PAYMENT_OFFLINE = "offline"

    PAYMENT_CHOICES = [
        (PAYMENT_ONLINE, "Online"),
        (PAYMENT_OFFLINE, "Offline"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="checkout_sessions",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout_sessions",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="checkout_sessions",
    )

    cart_id = models.CharField(max_length=64, blank=True, default="")
    checkout_id = models.CharField(max_length=64, blank=True, default="")

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    step = models.CharField(max_length=20, choices=STEP_CHOICES, default=STEP_CART_CREATION)

    cart_items = models.JSONField(default=list)
    shipping_address = models.JSONField(default=dict, blank=True)
    billing_address = models.JSONField(default=dict, blank=True)
    payment_method = models.CharField(max_length=10, choices=PAYMENT_CHOICES, default=PAYMENT_ONLINE)

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="USD")

    error_log = models.JSONField(default=list, blank=True)
    retry_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True, default="")

    idempotency_key = models.CharField(max_length=100, unique=True)
    metadata = models.JSONField(default=dict, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    abandoned_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="idx_checkout_user_status"),
            models.Index(fields=["status", "expires_at"], name="idx_checkout_status_expiry"),
        ]

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and self.expires_at < timezone.now()

    @property
    def is_active(self) -> bool:
        return self.status in self.ACTIVE_STATUSES and not self.is_expired

    def __str__(self):
        return f"Checkout {self.id} | {self.user} | {self.status}/{self.step}"
