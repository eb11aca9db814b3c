from django.contrib import admin

from products.models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "external_id",
        "sku",
        "retail_price",
        "sale_price",
        "cost_price",
        "allow_markup",
        "is_active",
        "last_synced_at",
    )
    list_filter = ("allow_markup", "is_active", "is_visible")
    search_fields = ("name", "sku", "external_id")
    readonly_fields = ("external_id", "last_synced_at", "created_at", "updated_at")
