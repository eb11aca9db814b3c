import uuid

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("organizations", "0001_initial"),
        ("products", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="ContractPrice",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "pricing_type",
                    models.CharField(
                        choices=[
                            ("individual", "Individual"),
                            ("organization", "Organization"),
                            ("location", "Location"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("contract_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("markup_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("min_quantity", models.PositiveIntegerField(default=1)),
                ("max_quantity", models.PositiveIntegerField(blank=True, null=True)),
                ("effective_date", models.DateTimeField(default=django.utils.timezone.now)),
                ("expiry_date", models.DateTimeField(blank=True, null=True)),
                ("allow_below_cost", models.BooleanField(default=False)),
                ("override_reason", models.TextField(blank=True)),
                ("notes", models.TextField(blank=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "location",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contract_prices",
                        to="organizations.location",
                    ),
                ),
                (
                    "organization",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contract_prices",
                        to="organizations.organization",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contract_prices",
                        to="products.product",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="contract_prices",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["product__name", "pricing_type", "min_quantity"],
                "indexes": [
                    models.Index(fields=["product", "pricing_type"], name="idx_cp_product_type"),
                    models.Index(fields=["user", "product"], name="idx_cp_user_product"),
                    models.Index(fields=["organization", "product"], name="idx_cp_org_product"),
                    models.Index(fields=["location", "product"], name="idx_cp_location_product"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("contract_price__isnull", False), ("markup_price__isnull", False), _connector="OR"),
                        name="cp_price_required",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("min_quantity__gte", 1)),
                        name="cp_min_quantity_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_quantity__isnull", True),
                            ("max_quantity__gte", models.F("min_quantity")),
                            _connector="OR",
                        ),
                        name="cp_quantity_range_valid",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(
                                ("location__isnull", True),
                                ("organization__isnull", True),
                                ("pricing_type", "individual"),
                                ("user__isnull", False),
                            ),
                            models.Q(
                                ("location__isnull", True),
                                ("organization__isnull", False),
                                ("pricing_type", "organization"),
                                ("user__isnull", True),
                            ),
                            models.Q(
                                ("location__isnull", False),
                                ("organization__isnull", True),
                                ("pricing_type", "location"),
                                ("user__isnull", True),
                            ),
                            _connector="OR",
                        ),
                        name="cp_entity_matches_type",
                    ),
                ],
            },
        ),
    ]
