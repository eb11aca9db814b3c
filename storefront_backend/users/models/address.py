"""
PATH: users/models/address.py

CUSTOMER ADDRESS BOOK

Rules:
- Each user has at most ONE default address per address_type.
- Organization / location are optional scoping (company + delivery site).
- location must belong to organization when both are set.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction


class CustomerAddress(models.Model):
    TYPE_SHIPPING = "shipping"
    TYPE_BILLING = "billing"

    TYPE_CHOICES = [
        (TYPE_SHIPPING, "Shipping"),
        (TYPE_BILLING, "Billing"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="addresses",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="addresses",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="addresses",
    )

    address_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    label = models.CharField(max_length=120)

    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    company = models.CharField(max_length=200, blank=True)
    address1 = models.CharField(max_length=255)
    address2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120)
    state_or_province = models.CharField(max_length=120)
    postal_code = models.CharField(max_length=20)
    country_code = models.CharField(max_length=2, default="US")
    phone = models.CharField(max_length=40, blank=True)
    email = models.EmailField(blank=True)

    is_default = models.BooleanField(default=False)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_default", "-created_at"]
        indexes = [
            models.Index(
                fields=["user", "is_default", "address_type"],
                name="idx_address_default_lookup",
            ),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "address_type"],
                condition=models.Q(is_default=True),
                name="uniq_default_address_per_user_type",
            ),
        ]

    def clean(self):
        if self.location_id and self.organization_id:
            if self.location.organization_id != self.organization_id:
                raise ValidationError(
                    {"location": "Location does not belong to the selected organization."}
                )
        self.country_code = (self.country_code or "US").strip().upper()

    def save(self, *args, **kwargs):
        if self.location_id and not self.organization_id:
            self.organization_id = self.location.organization_id
        with transaction.atomic():
            if self.is_default:
                (
                    CustomerAddress.objects.filter(
                        user_id=self.user_id,
                        address_type=self.address_type,
                        is_default=True,
                    )
                    .exclude(pk=self.pk)
                    .update(is_default=False)
                )
            self.full_clean()
            super().save(*args, **kwargs)

    def as_commerce_address(self) -> dict:
        """Address payload in the shape the commerce platform expects."""
        return {
            "first_name": self.first_name,
            "last_name": self.last_name,
            "company": self.company,
            "address1": self.address1,
            "address2": self.address2,
            "city": self.city,
            "state_or_province": self.state_or_province,
            "postal_code": self.postal_code,
            "country_code": self.country_code,
            "phone": self.phone,
            "email": self.email or self.user.email,
        }

    def __str__(self):
        return f"{self.label} ({self.address_type})"
