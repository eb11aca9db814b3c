from django.contrib import admin

from pricing.models import ContractPrice


@admin.register(ContractPrice)
class ContractPriceAdmin(admin.ModelAdmin):
    list_display = (
        "product",
        "pricing_type",
        "user",
        "organization",
        "location",
        "contract_price",
        "markup_price",
        "min_quantity",
        "max_quantity",
        "effective_date",
        "expiry_date",
    )
    list_filter = ("pricing_type", "allow_below_cost")
    search_fields = ("product__name", "product__sku", "user__email", "organization__name", "location__name")
    raw_id_fields = ("product", "user", "organization", "location", "created_by")
    readonly_fields = ("created_by", "created_at", "updated_at")

    def save_model(self, request, obj, form, change):
        if not change and obj.created_by_id is None:
            obj.created_by = request.user
        super().save_model(request, obj, form, change)
