import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("organizations", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.AddField(
            model_name="organization",
            name="is_house_account",
            field=models.BooleanField(default=False),
        ),
        migrations.AddField(
            model_name="organization",
            name="default_sales_rep",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.SET_NULL,
                related_name="default_organizations",
                to=settings.AUTH_USER_MODEL,
            ),
        ),
    ]
