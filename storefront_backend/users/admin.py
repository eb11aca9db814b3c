# users/admin.py

"""
USERS ADMIN REGISTRATION

Custom User with approval state, plus read-only login audit and address book.
"""

from __future__ import annotations

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.contrib.auth.admin import UserAdmin as DjangoUserAdmin

from users.models import CustomerAddress, LoginAudit

User = get_user_model()


@admin.register(User)
class UserAdmin(DjangoUserAdmin):
    ordering = ("email",)
    list_display = ("email", "username", "role", "approval_status", "is_active", "is_staff")
    list_filter = ("role", "approval_status", "is_staff", "is_active", "is_superuser")
    search_fields = ("email", "username", "first_name", "last_name")
    readonly_fields = ("approved_at", "approved_by", "created_at", "updated_at")

    fieldsets = (
        (None, {"fields": ("email", "username", "password")}),
        ("Profile", {"fields": ("first_name", "last_name", "phone", "role")}),
        ("Approval", {"fields": ("approval_status", "approved_at", "approved_by")}),
        (
            "Permissions",
            {
                "fields": (
                    "is_active",
                    "is_staff",
                    "is_superuser",
                    "groups",
                    "user_permissions",
                )
            },
        ),
        ("Timestamps", {"fields": ("created_at", "updated_at")}),
    )

    add_fieldsets = (
        (
            None,
            {
                "classes": ("wide",),
                "fields": (
                    "email",
                    "password1",
                    "password2",
                    "role",
                    "approval_status",
                    "is_staff",
                    "is_active",
                ),
            },
        ),
    )


@admin.register(LoginAudit)
class LoginAuditAdmin(admin.ModelAdmin):
    list_display = ("email", "success", "failure_reason", "ip_address", "created_at")
    list_filter = ("success", "age_verified")
    search_fields = ("email", "ip_address")
    readonly_fields = [f.name for f in LoginAudit._meta.fields]

    def has_add_permission(self, request):
        return False


@admin.register(CustomerAddress)
class CustomerAddressAdmin(admin.ModelAdmin):
    list_display = ("label", "user", "address_type", "city", "is_default", "is_active")
    list_filter = ("address_type", "is_default", "is_active", "country_code")
    search_fields = ("label", "user__email", "city", "postal_code")
    raw_id_fields = ("user", "organization", "location")
