"""
PATH: payments/models.py

SAVED PAYMENT METHODS (TOKEN REFERENCES ONLY)

Card and bank details are tokenised by the payment processor before they reach
this API. A row stores the processor token plus display data:
- last_four, expiry (cards), bank name / account type (bank accounts)
- never a full card number, CVV or full account number

Rules:
- a method belongs to an organization, optionally narrowed to one location
- location must belong to the organization
- at most ONE default per (organization, location) scope; org-wide methods
  (location NULL) form their own scope
- cards need an expiry; bank accounts need an account type
"""

from __future__ import annotations

import re
import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models, transaction
from django.utils import timezone

# A token that is nothing but 13-19 digits is a raw card number, not a token.
RAW_PAN_RE = re.compile(r"^\d{13,19}$")


class PaymentMethod(models.Model):
    TYPE_CREDIT_CARD = "credit_card"
    TYPE_DEBIT_CARD = "debit_card"
    TYPE_BANK_ACCOUNT = "bank_account"
    TYPE_ACH = "ach"

    TYPE_CHOICES = [
        (TYPE_CREDIT_CARD, "Credit card"),
        (TYPE_DEBIT_CARD, "Debit card"),
        (TYPE_BANK_ACCOUNT, "Bank account"),
        (TYPE_ACH, "ACH"),
    ]

    CARD_TYPES = {TYPE_CREDIT_CARD, TYPE_DEBIT_CARD}
    BANK_TYPES = {TYPE_BANK_ACCOUNT, TYPE_ACH}

    ACCOUNT_CHECKING = "checking"
    ACCOUNT_SAVINGS = "savings"

    ACCOUNT_TYPE_CHOICES = [
        (ACCOUNT_CHECKING, "Checking"),
        (ACCOUNT_SAVINGS, "Savings"),
    ]

    PROCESSOR_BIGCOMMERCE = "bigcommerce"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="payment_methods",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="payment_methods",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_methods_added",
    )

    label = models.CharField(max_length=120)
    payment_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    last_four = models.CharField(
        max_length=4,
        validators=[RegexValidator(r"^\d{4}$", "Last four must be exactly 4 digits.")],
    )
    expiry_month = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(12)],
    )
    expiry_year = models.PositiveSmallIntegerField(null=True, blank=True)
    account_holder_name = models.CharField(max_length=200)
    bank_name = models.CharField(max_length=120, blank=True)
    account_type = models.CharField(max_length=20, choices=ACCOUNT_TYPE_CHOICES, blank=True)

    payment_token = models.CharField(max_length=255)
    payment_processor = models.CharField(max_length=40, default=PROCESSOR_BIGCOMMERCE)

    is_default = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_default", "-created_at"]
        indexes = [
            models.Index(fields=["organization", "location"], name="idx_payment_method_scope"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["organization"],
                condition=models.Q(is_default=True, location__isnull=True),
                name="uniq_default_payment_method_org",
            ),
            models.UniqueConstraint(
                fields=["organization", "location"],
                condition=models.Q(is_default=True, location__isnull=False),
                name="uniq_default_payment_method_location",
            ),
        ]

    @property
    def is_card(self) -> bool:
        return self.payment_type in self.CARD_TYPES

    def is_expired(self, today=None) -> bool:
        if not self.is_card or not self.expiry_month or not self.expiry_year:
            return False
        today = today or timezone.localdate()
        return (self.expiry_year, self.expiry_month) < (today.year, today.month)

    @property
    def display_name(self) -> str:
        type_label = self.get_payment_type_display()
        if self.is_card:
            return f"{type_label} **** {self.last_four} (Exp: {self.expiry_month:02d}/{self.expiry_year})"
        bank = f"{self.bank_name} " if self.bank_name else ""
        account = self.get_account_type_display() if self.account_type else type_label
        return f"{bank}{account} **** {self.last_four}"

    def clean(self):
        errors = {}

        token = (self.payment_token or "").strip()
        if not token:
            errors["payment_token"] = "Payment token is required. Payment data must be tokenized first."
        elif RAW_PAN_RE.match(token.replace(" ", "").replace("-", "")):
            errors["payment_token"] = "Raw card numbers are not accepted; send the processor token."
        self.payment_token = token

        if self.is_card:
            if not self.expiry_month or not self.expiry_year:
                errors["expiry_month"] = "Credit and debit cards require an expiry date."
        elif self.payment_type in self.BANK_TYPES:
            if not self.account_type:
                errors["account_type"] = "Bank accounts require an account type (checking or savings)."
            self.expiry_month = None
            self.expiry_year = None

        if self.location_id and self.organization_id:
            if self.location.organization_id != self.organization_id:
                errors["location"] = "Location does not belong to the selected organization."

        if errors:
            raise ValidationError(errors)

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if self.is_default:
                (
                    PaymentMethod.objects.filter(
                        organization_id=self.organization_id,
                        location_id=self.location_id,
                        is_default=True,
                    )
                    .exclude(pk=self.pk)
                    .update(is_default=False)
                )
            self.full_clean()
            super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.label} ({self.display_name})"
