"""
PATH: users/management/commands/ensure_superuser.py

Deploy-time superuser bootstrap.

- Reads AUTO_ADMIN_EMAIL + AUTO_ADMIN_PASSWORD from env (django-environ).
- Idempotent: creates the superuser if missing; otherwise re-asserts admin
  flags, approval and password.
- Never prints the password.
"""

from __future__ import annotations

import environ
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from permissions.roles import ROLE_ADMIN

env = environ.Env()


class Command(BaseCommand):
    help = "Create/update an initial superuser from env vars (idempotent)."

    def handle(self, *args, **options):
        email = (env("AUTO_ADMIN_EMAIL", default="") or "").strip()
        password = (env("AUTO_ADMIN_PASSWORD", default="") or "").strip()

        if not email or not password:
            self.stdout.write(self.style.WARNING("AUTO_ADMIN_* env vars not set. Skipping."))
            return

        User = get_user_model()

        with transaction.atomic():
            user = User.objects.filter(email__iexact=email).first()

            if user is None:
                User.objects.create_superuser(email=email, password=password)
                self.stdout.write(self.style.SUCCESS(f"Superuser ensured: {email} (created)"))
                return

            user.is_active = True
            user.is_staff = True
            user.is_superuser = True
            user.role = ROLE_ADMIN
            user.approval_status = User.APPROVAL_APPROVED
            user.approved_at = user.approved_at or timezone.now()
            user.set_password(password)
            user.save()
            self.stdout.write(self.style.SUCCESS(f"Superuser ensured: {email} (updated)"))
