from django.contrib import admin

from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product",
        "external_id",
        "name",
        "quantity",
        "unit_price",
        "retail_price",
        "unit_cost",
        "markup_amount",
        "price_source",
        "line_total",
    )

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_no", "user", "organization", "status", "total", "sales_rep", "created_at")
    list_filter = ("status", "created_at")
    search_fields = ("order_no", "external_order_id", "user__email", "customer_email")
    readonly_fields = (
        "order_no",
        "checkout_session",
        "external_order_id",
        "external_cart_id",
        "subtotal",
        "tax",
        "shipping",
        "total",
        "created_at",
        "updated_at",
    )
    raw_id_fields = ("user", "organization", "location", "sales_rep")
    inlines = [OrderItemInline]
