from django.contrib import admin

from organizations.models import Location, Organization, OrganizationMembership


class LocationInline(admin.TabularInline):
    model = Location
    extra = 0
    fields = ("name", "code", "is_active")


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ("name", "code", "contact_email", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "code", "contact_email")
    inlines = [LocationInline]


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ("name", "organization", "code", "is_active")
    list_filter = ("is_active", "organization")
    search_fields = ("name", "code", "organization__name")


@admin.register(OrganizationMembership)
class OrganizationMembershipAdmin(admin.ModelAdmin):
    list_display = ("user", "organization", "location", "role", "is_primary")
    list_filter = ("role", "is_primary")
    search_fields = ("user__email", "organization__name", "location__name")
    raw_id_fields = ("user", "organization", "location")
