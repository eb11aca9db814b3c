# users/management/commands/seed_users.py

from __future__ import annotations

from dataclasses import dataclass

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from permissions.roles import ROLE_ADMIN, ROLE_CUSTOMER, ROLE_DISTRIBUTOR, ROLE_SALES_REP


@dataclass(frozen=True)
class SeedUserSpec:
    label: str
    role: str
    email: str
    first_name: str = ""
    last_name: str = ""
    approved: bool = True


SEED_USERS = [
    SeedUserSpec("Admin", ROLE_ADMIN, "admin@example.com", "System", "Admin"),
    SeedUserSpec("Sales Rep", ROLE_SALES_REP, "rep@example.com", "Riley", "Rep"),
    SeedUserSpec("Distributor", ROLE_DISTRIBUTOR, "distributor@example.com", "Dana", "Distributor"),
    SeedUserSpec("Customer", ROLE_CUSTOMER, "customer@example.com", "Casey", "Customer"),
    SeedUserSpec(
        "Pending customer",
        ROLE_CUSTOMER,
        "pending@example.com",
        "Pat",
        "Pending",
        approved=False,
    ),
]


class Command(BaseCommand):
    help = "Seed demo accounts for each storefront role."

    def add_arguments(self, parser):
        parser.add_argument(
            "--password",
            type=str,
            default="Pass1234!",
            help="Password for seeded users (default: Pass1234!)",
        )
        parser.add_argument(
            "--force-password",
            action="store_true",
            help="Reset password for existing seeded users too.",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        password = options.get("password") or ""
        force_password = bool(options.get("force_password"))

        if len(password) < 6:
            raise CommandError("--password must be at least 6 characters.")

        User = get_user_model()
        created_count = 0
        updated_count = 0

        for seed in SEED_USERS:
            approval = User.APPROVAL_APPROVED if seed.approved else User.APPROVAL_PENDING
            user = User.objects.filter(email__iexact=seed.email).first()

            if user is None:
                User.objects.create_user(
                    email=seed.email,
                    password=password,
                    role=seed.role,
                    first_name=seed.first_name,
                    last_name=seed.last_name,
                    is_staff=seed.role == ROLE_ADMIN,
                    is_superuser=seed.role == ROLE_ADMIN,
                    approval_status=approval,
                    approved_at=timezone.now() if seed.approved else None,
                )
                created_count += 1
                self.stdout.write(f"created: {seed.label} ({seed.role}) -> {seed.email}")
                continue

            user.role = seed.role
            user.approval_status = approval
            user.is_active = True
            if force_password:
                user.set_password(password)
            user.save()
            updated_count += 1
            self.stdout.write(f"exists:  {seed.label} ({seed.role}) -> {seed.email}")

        self.stdout.write("\n--- Summary ---")
        self.stdout.write(f"Created: {created_count}")
        self.stdout.write(f"Updated: {updated_count}")
