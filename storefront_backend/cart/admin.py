from django.contrib import admin

from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "quantity",
        "unit_price",
        "regular_price",
        "price_source",
        "line_total",
        "created_at",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "organization",
        "location",
        "is_active",
        "item_count",
        "subtotal_amount",
        "created_at",
    )
    readonly_fields = (
        "id",
        "user",
        "organization",
        "location",
        "is_active",
        "created_at",
        "updated_at",
        "subtotal_amount",
        "item_count",
    )
    search_fields = ("user__email",)
    list_filter = ("is_active", "created_at")
    inlines = [CartItemInline]
