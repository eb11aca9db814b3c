from __future__ import annotations

from django.contrib.auth import get_user_model
from rest_framework import serializers

from organizations.models import Location, Organization, OrganizationMembership
from permissions.roles import ROLE_SALES_REP, get_user_role

User = get_user_model()


class OrganizationSerializer(serializers.ModelSerializer):
    location_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = Organization
        fields = [
            "id",
            "name",
            "code",
            "description",
            "contact_email",
            "contact_phone",
            "billing_address",
            "is_house_account",
            "default_sales_rep",
            "is_active",
            "location_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at", "location_count"]

    def validate_name(self, value):
        value = (value or "").strip()
        qs = Organization.objects.filter(name__iexact=value)
        if self.instance is not None:
            qs = qs.exclude(pk=self.instance.pk)
        if qs.exists():
            raise serializers.ValidationError("An organization with this name already exists.")
        return value

    def validate_default_sales_rep(self, value):
        if value is not None and get_user_role(value) != ROLE_SALES_REP:
            raise serializers.ValidationError("Default sales rep must have the sales_rep role.")
        return value


class LocationSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source="organization.name", read_only=True)

    class Meta:
        model = Location
        fields = [
            "id",
            "organization",
            "organization_name",
            "name",
            "code",
            "address",
            "contact_email",
            "contact_phone",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "organization_name", "created_at", "updated_at"]
        validators = []

    def validate(self, attrs):
        organization = attrs.get("organization") or getattr(self.instance, "organization", None)
        code = (attrs.get("code") or "").strip().upper()
        if organization is not None and code:
            qs = Location.objects.filter(organization=organization, code=code)
            if self.instance is not None:
                qs = qs.exclude(pk=self.instance.pk)
            if qs.exists():
                raise serializers.ValidationError(
                    {"code": "This code is already used by another location of the organization."}
                )
        return attrs


class MembershipSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source="organization.name", read_only=True)
    location_name = serializers.CharField(source="location.name", read_only=True, default=None)
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = OrganizationMembership
        fields = [
            "id",
            "user",
            "user_email",
            "organization",
            "organization_name",
            "location",
            "location_name",
            "role",
            "is_primary",
            "created_at",
        ]
        read_only_fields = ["id", "user_email", "organization_name", "location_name", "created_at"]
        # duplicates are answered with 409 by the view
        validators = []

    def validate(self, attrs):
        organization = attrs.get("organization") or getattr(self.instance, "organization", None)
        location = attrs.get("location", getattr(self.instance, "location", None))
        if location is not None and organization is not None:
            if location.organization_id != organization.pk:
                raise serializers.ValidationError(
                    {"location": "Location does not belong to the selected organization."}
                )
        return attrs
