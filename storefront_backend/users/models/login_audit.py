"""
PATH: users/models/login_audit.py

LOGIN AUDIT

Every login attempt (success or failure) is recorded.
- user is nullable: failed attempts for unknown identifiers still get a row
- age_verified mirrors the storefront's age gate checkbox at login time
"""

from __future__ import annotations

import uuid

from django.conf import settings
from django.db import models


class LoginAudit(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="login_audits",
    )
    email = models.CharField(max_length=254, db_index=True)

    success = models.BooleanField(default=False)
    failure_reason = models.CharField(max_length=120, blank=True)
    age_verified = models.BooleanField(default=False)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        outcome = "ok" if self.success else "failed"
        return f"{self.email} {outcome} @ {self.created_at:%Y-%m-%d %H:%M}"
