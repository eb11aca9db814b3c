from django.apps import AppConfig


class PricingConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "pricing"
    verbose_name = "Contract Pricing"

    def ready(self):
        from pricing import signals  # noqa: F401
