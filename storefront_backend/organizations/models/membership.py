"""
PATH: organizations/models/membership.py

ORGANIZATION MEMBERSHIP (user <-> organization [<-> location])

Rules:
- location, when set, must belong to organization
- unique per (user, organization, location); org-wide memberships have location NULL
- at most one primary membership per user
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models, transaction


class OrganizationMembership(models.Model):
    ROLE_ADMIN = "admin"
    ROLE_MANAGER = "manager"
    ROLE_MEMBER = "member"
    ROLE_VIEWER = "viewer"

    ROLE_CHOICES = [
        (ROLE_ADMIN, "Admin"),
        (ROLE_MANAGER, "Manager"),
        (ROLE_MEMBER, "Member"),
        (ROLE_VIEWER, "Viewer"),
    ]

    MANAGING_ROLES = {ROLE_ADMIN, ROLE_MANAGER}
    PURCHASING_ROLES = {ROLE_ADMIN, ROLE_MANAGER, ROLE_MEMBER}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    organization = models.ForeignKey(
        "organizations.Organization",
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    location = models.ForeignKey(
        "organizations.Location",
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="memberships",
    )

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_MEMBER)
    is_primary = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-is_primary", "organization__name"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "organization", "location"],
                name="uniq_membership_user_org_location",
            ),
            models.UniqueConstraint(
                fields=["user", "organization"],
                condition=models.Q(location__isnull=True),
                name="uniq_membership_user_org_wide",
            ),
            models.UniqueConstraint(
                fields=["user"],
                condition=models.Q(is_primary=True),
                name="uniq_primary_membership_per_user",
            ),
        ]

    def clean(self):
        if self.location_id and self.location.organization_id != self.organization_id:
            raise ValidationError(
                {"location": "Location does not belong to the selected organization."}
            )

    def save(self, *args, **kwargs):
        with transaction.atomic():
            if self.is_primary:
                (
                    OrganizationMembership.objects.filter(user_id=self.user_id, is_primary=True)
                    .exclude(pk=self.pk)
                    .update(is_primary=False)
                )
            self.full_clean()
            super().save(*args, **kwargs)

    @property
    def can_manage(self) -> bool:
        return self.role in self.MANAGING_ROLES

    @property
    def can_purchase(self) -> bool:
        return self.role in self.PURCHASING_ROLES

    def __str__(self):
        scope = self.location.name if self.location_id else "all locations"
        return f"{self.user} @ {self.organization} ({scope}, {self.role})"
