"""
PATH: users/models/user.py

CUSTOM USER MODEL

Identity:
- email is the canonical login identifier; username is optional and unique.
- Login accepts EITHER username OR email (enforced by users.auth_backends).

Account approval:
- New storefront accounts start "pending".
- Only approved accounts (or admins) see contract pricing.
- Admin accounts are approved on creation.
"""

from __future__ import annotations

import uuid

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone

from permissions.roles import ROLE_ADMIN, ROLE_CHOICES, ROLE_CUSTOMER


# ---------------- USER MANAGER ----------------
class UserManager(BaseUserManager):
    def _unique_username(self, email: str) -> str:
        base = (email.split("@")[0] or "user").strip().lower()
        candidate = base
        i = 1
        while self.model.objects.filter(username__iexact=candidate).exists():
            i += 1
            candidate = f"{base}{i}"
        return candidate

    def create_user(self, email=None, password=None, **extra_fields):
        """
        Rules:
        - email is required.
        - If username is missing it is derived from the email local-part.
        - Admins are approved on creation.
        """
        email = (email or extra_fields.pop("email", "") or "").strip()
        if not email:
            raise ValueError("An email address is required")

        email = self.normalize_email(email)
        username = (extra_fields.get("username") or "").strip()

        extra_fields["username"] = username or self._unique_username(email)
        extra_fields.setdefault("is_active", True)
        extra_fields.setdefault("role", ROLE_CUSTOMER)

        if extra_fields["role"] == ROLE_ADMIN:
            extra_fields.setdefault("approval_status", User.APPROVAL_APPROVED)
            extra_fields.setdefault("approved_at", timezone.now())

        user = self.model(email=email, **extra_fields)

        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()

        user.full_clean(exclude=["password"])
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError("Superuser must have an email")
        if not password:
            raise ValueError("Superuser must have a password")

        extra_fields.setdefault("role", ROLE_ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)
        extra_fields.setdefault("is_active", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True")

        return self.create_user(email=email, password=password, **extra_fields)


# ---------------- USER MODEL ----------------
class User(AbstractBaseUser, PermissionsMixin):
    APPROVAL_PENDING = "pending"
    APPROVAL_APPROVED = "approved"
    APPROVAL_REJECTED = "rejected"

    APPROVAL_CHOICES = [
        (APPROVAL_PENDING, "Pending"),
        (APPROVAL_APPROVED, "Approved"),
        (APPROVAL_REJECTED, "Rejected"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    username = models.CharField(max_length=150, unique=True, null=True, blank=True)
    email = models.EmailField(unique=True)

    first_name = models.CharField(max_length=100, blank=True)
    last_name = models.CharField(max_length=100, blank=True)
    phone = models.CharField(max_length=40, blank=True)

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_CUSTOMER)

    approval_status = models.CharField(
        max_length=20,
        choices=APPROVAL_CHOICES,
        default=APPROVAL_PENDING,
        db_index=True,
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_users",
    )

    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    class Meta:
        ordering = ["-created_at"]

    def clean(self):
        if self.email:
            self.email = self.__class__.objects.normalize_email(self.email).strip()
        if self.username is not None:
            self.username = self.username.strip() or None

        if not self.email:
            raise ValidationError({"email": "User must have an email"})

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_approved(self) -> bool:
        return self.approval_status == self.APPROVAL_APPROVED

    @property
    def is_pricing_eligible(self) -> bool:
        """Contract pricing applies to active admins and approved accounts only."""
        if not self.is_active:
            return False
        return self.role == ROLE_ADMIN or self.is_superuser or self.is_approved

    def __str__(self):
        return f"{self.email} ({self.role})"
