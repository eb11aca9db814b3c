"""
PATH: organizations/models/organization.py

ORGANIZATION + LOCATION

Multi-tenant entities: an Organization is a customer's company, a Location is
one of its delivery sites. Both scope contract pricing and shipping.

Rules:
- Organization name is unique (case-insensitive); code is unique when set.
- Location code is unique within its organization when set.
- Deactivation is soft (is_active=False); pricing ignores inactive entities.
- default_sales_rep, when set, must hold the sales_rep role; new orders prefer
  that rep. House accounts earn no commission.
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.functions import Lower

from permissions.roles import ROLE_SALES_REP, get_user_role


class Organization(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, null=True, blank=True, unique=True)
    description = models.TextField(blank=True)

    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=40, blank=True)
    billing_address = models.JSONField(default=dict, blank=True)

    # House accounts are served by staff directly and earn no commission.
    is_house_account = models.BooleanField(default=False)
    default_sales_rep = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="default_organizations",
    )

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.UniqueConstraint(Lower("name"), name="uniq_organization_name_ci"),
        ]

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "Organization name is required."})
        self.code = (self.code or "").strip().upper() or None

        clash = Organization.objects.filter(name__iexact=self.name).exclude(pk=self.pk)
        if clash.exists():
            raise ValidationError({"name": "An organization with this name already exists."})

        if self.default_sales_rep_id and get_user_role(self.default_sales_rep) != ROLE_SALES_REP:
            raise ValidationError({"default_sales_rep": "Default sales rep must have the sales_rep role."})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return self.name


class Location(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    organization = models.ForeignKey(
        Organization,
        on_delete=models.CASCADE,
        related_name="locations",
    )
    name = models.CharField(max_length=200)
    code = models.CharField(max_length=50, null=True, blank=True)

    address = models.JSONField(default=dict, blank=True)
    contact_email = models.EmailField(blank=True)
    contact_phone = models.CharField(max_length=40, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["organization__name", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["organization", "code"],
                condition=models.Q(code__isnull=False),
                name="uniq_location_code_per_org",
            ),
        ]

    def clean(self):
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError({"name": "Location name is required."})
        self.code = (self.code or "").strip().upper() or None

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.organization.name} / {self.name}"
