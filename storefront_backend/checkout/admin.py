from django.contrib import admin

from checkout.models import CheckoutSession


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "status",
        "step",
        "total",
        "retry_count",
        "expires_at",
        "created_at",
    )
    list_filter = ("status", "step", "payment_method")
    search_fields = ("id", "user__email", "cart_id", "checkout_id", "idempotency_key")
    readonly_fields = (
        "cart_items",
        "error_log",
        "last_error",
        "retry_count",
        "idempotency_key",
        "created_at",
        "updated_at",
    )
    ordering = ("-created_at",)
