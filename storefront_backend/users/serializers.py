"""
PATH: users/serializers.py

USER SERIALIZERS
"""

from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers

from users.models import CustomerAddress, LoginAudit

User = get_user_model()


# ---------------- REGISTER ----------------
class RegisterSerializer(serializers.Serializer):
    """
    Self-service registration always creates a pending customer.
    Elevated roles are assigned by admins.
    """

    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        validators=[validate_password],
        style={"input_type": "password"},
    )
    username = serializers.CharField(required=False, allow_blank=True, max_length=150)
    first_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    last_name = serializers.CharField(required=False, allow_blank=True, max_length=100)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=40)

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("An account with this email already exists.")
        return value

    def validate_username(self, value):
        value = (value or "").strip()
        if value and "@" in value:
            raise serializers.ValidationError("Username cannot contain '@'.")
        if value and User.objects.filter(username__iexact=value).exists():
            raise serializers.ValidationError("This username is taken.")
        return value

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data["email"],
            password=validated_data["password"],
            username=validated_data.get("username") or None,
            first_name=validated_data.get("first_name", ""),
            last_name=validated_data.get("last_name", ""),
            phone=validated_data.get("phone", ""),
        )


# ---------------- LOGIN (INPUT ONLY) ----------------
class LoginSerializer(serializers.Serializer):
    identifier = serializers.CharField(help_text="Email or username")
    password = serializers.CharField(write_only=True, style={"input_type": "password"})
    age_verified = serializers.BooleanField(required=False, default=False)


# ---------------- USER OUTPUT ----------------
class UserSerializer(serializers.ModelSerializer):
    is_pricing_eligible = serializers.BooleanField(read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "first_name",
            "last_name",
            "phone",
            "role",
            "approval_status",
            "approved_at",
            "is_pricing_eligible",
            "is_active",
            "created_at",
        ]
        read_only_fields = fields


class UserAdminUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["role", "is_active", "first_name", "last_name", "phone"]


class ApprovalSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=User.APPROVAL_CHOICES)


# ---------------- AUDIT ----------------
class LoginAuditSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoginAudit
        fields = [
            "id",
            "user",
            "email",
            "success",
            "failure_reason",
            "age_verified",
            "ip_address",
            "user_agent",
            "created_at",
        ]
        read_only_fields = fields


# ---------------- ADDRESSES ----------------
class CustomerAddressSerializer(serializers.ModelSerializer):
    class Meta:
        model = CustomerAddress
        fields = [
            "id",
            "organization",
            "location",
            "address_type",
            "label",
            "first_name",
            "last_name",
            "company",
            "address1",
            "address2",
            "city",
            "state_or_province",
            "postal_code",
            "country_code",
            "phone",
            "email",
            "is_default",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]

    def validate(self, attrs):
        from organizations.services.membership import can_access_location, is_member

        user = self.context["request"].user
        organization = attrs.get("organization")
        location = attrs.get("location")

        if organization is not None and not is_member(user, organization):
            raise serializers.ValidationError(
                {"organization": "You are not a member of this organization."}
            )
        if location is not None and not can_access_location(user, location):
            raise serializers.ValidationError(
                {"location": "You do not have access to this location."}
            )
        return attrs
