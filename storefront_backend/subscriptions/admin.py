from django.contrib import admin

from subscriptions.models import RecurringOrder, RecurringOrderHistory


class RecurringOrderHistoryInline(admin.TabularInline):
    model = RecurringOrderHistory
    extra = 0
    fields = ("scheduled_date", "status", "order", "amount", "retry_count", "error_message")
    readonly_fields = fields
    can_delete = False


@admin.register(RecurringOrder)
class RecurringOrderAdmin(admin.ModelAdmin):
    list_display = (
        "user",
        "product",
        "quantity",
        "frequency",
        "frequency_interval",
        "status",
        "next_order_date",
        "total_orders",
    )
    list_filter = ("status", "frequency")
    search_fields = ("user__email", "product__name", "product__sku", "organization__name")
    readonly_fields = ("total_orders", "last_order_date", "created_at", "updated_at")
    inlines = [RecurringOrderHistoryInline]


@admin.register(RecurringOrderHistory)
class RecurringOrderHistoryAdmin(admin.ModelAdmin):
    list_display = ("recurring_order", "scheduled_date", "status", "amount", "retry_count", "processed_date")
    list_filter = ("status",)
    date_hierarchy = "scheduled_date"
