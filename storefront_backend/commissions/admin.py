from django.contrib import admin

from commissions.models import Commission, Distributor, DistributorSalesRep, OrganizationSalesRep


@admin.register(Distributor)
class DistributorAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "commission_rate", "is_active")
    search_fields = ("name", "code")
    list_filter = ("is_active",)


@admin.register(DistributorSalesRep)
class DistributorSalesRepAdmin(admin.ModelAdmin):
    list_display = ("distributor", "sales_rep", "commission_split_type", "sales_rep_rate", "is_active")
    list_filter = ("commission_split_type", "is_active")
    raw_id_fields = ("sales_rep",)


@admin.register(OrganizationSalesRep)
class OrganizationSalesRepAdmin(admin.ModelAdmin):
    list_display = ("organization", "sales_rep", "distributor", "commission_rate", "is_active", "assigned_at")
    list_filter = ("is_active",)
    raw_id_fields = ("organization", "sales_rep")


@admin.register(Commission)
class CommissionAdmin(admin.ModelAdmin):
    list_display = ("order", "sales_rep", "commission_amount", "sales_rep_commission", "status", "created_at")
    list_filter = ("status", "commission_split_type")
    search_fields = ("order__order_no", "sales_rep__email")
    readonly_fields = (
        "order",
        "order_total",
        "total_margin",
        "commission_rate",
        "commission_amount",
        "sales_rep_commission",
        "distributor_commission",
        "margin_details",
        "created_at",
        "updated_at",
    )
