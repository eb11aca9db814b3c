from django.contrib import admin

from payments.models import PaymentMethod


@admin.register(PaymentMethod)
class PaymentMethodAdmin(admin.ModelAdmin):
    list_display = ("label", "organization", "location", "payment_type", "last_four", "is_default", "created_at")
    list_filter = ("payment_type", "is_default")
    search_fields = ("label", "organization__name", "last_four")
    exclude = ("payment_token",)

    def has_add_permission(self, request):
        # Tokens come from the processor via the API.
        return False
