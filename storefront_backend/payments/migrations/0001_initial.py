import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="PaymentMethod",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("label", models.CharField(max_length=120)),
                (
                    "payment_type",
                    models.CharField(
                        choices=[
                            ("credit_card", "Credit card"),
                            ("debit_card", "Debit card"),
                            ("bank_account", "Bank account"),
                            ("ach", "ACH"),
                        ],
                        max_length=20,
                    ),
                ),
                (
                    "last_four",
                    models.CharField(
                        max_length=4,
                        validators=[
                            django.core.validators.RegexValidator("^\\d{4}$", "Last four must be exactly 4 digits.")
                        ],
                    ),
                ),
                (
                    "expiry_month",
                    models.PositiveSmallIntegerField(
                        blank=True,
                        null=True,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(12),
                        ],
                    ),
                ),
                ("expiry_year", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("account_holder_name", models.CharField(max_length=200)),
                ("bank_name", models.CharField(blank=True, max_length=120)),
                (
                    "account_type",
                    models.CharField(
                        blank=True,
                        choices=[("checking", "Checking"), ("savings", "Savings")],
                        max_length=20,
                    ),
                ),
                ("payment_token", models.CharField(max_length=255)),
                ("payment_processor", models.CharField(default="bigcommerce", max_length=40)),
                ("is_default", models.BooleanField(default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_methods",
                        to="organizations.location",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_methods",
                        to="organizations.organization",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_methods_added",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-is_default", "-created_at"],
                "indexes": [
                    models.Index(fields=["organization", "location"], name="idx_payment_method_scope"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_default", True), ("location__isnull", True)),
                        fields=("organization",),
                        name="uniq_default_payment_method_org",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("is_default", True), ("location__isnull", False)),
                        fields=("organization", "location"),
                        name="uniq_default_payment_method_location",
                    ),
                ],
            },
        ),
    ]
