import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("external_id", models.BigIntegerField(db_index=True, unique=True)),
                ("sku", models.CharField(blank=True, db_index=True, max_length=128)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                ("brand", models.CharField(blank=True, max_length=120)),
                ("image_url", models.URLField(blank=True, max_length=500)),
                ("retail_price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("sale_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("cost_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("allow_markup", models.BooleanField(default=False)),
                ("is_visible", models.BooleanField(default=True)),
                ("is_active", models.BooleanField(default=True)),
                ("last_synced_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["name"],
                "indexes": [models.Index(fields=["is_active", "is_visible"], name="idx_product_storefront")],
            },
        ),
    ]
