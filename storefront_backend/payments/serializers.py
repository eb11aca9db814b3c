from __future__ import annotations

from rest_framework import serializers

from organizations.models import Organization
from payments.models import PaymentMethod


class PaymentMethodSerializer(serializers.ModelSerializer):
    organization = serializers.PrimaryKeyRelatedField(queryset=Organization.objects.all())
    payment_token = serializers.CharField(write_only=True, required=False, max_length=255)
    display_name = serializers.CharField(read_only=True)
    is_expired = serializers.SerializerMethodField()

    class Meta:
        model = PaymentMethod
        fields = [
            "id",
            "organization",
            "location",
            "label",
            "payment_type",
            "last_four",
            "expiry_month",
            "expiry_year",
            "account_holder_name",
            "bank_name",
            "account_type",
            "payment_token",
            "payment_processor",
            "is_default",
            "is_expired",
            "display_name",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "payment_processor", "created_at", "updated_at"]
        # Default uniqueness is settled in PaymentMethod.save(), which clears the old default.
        validators = []

    def get_is_expired(self, obj) -> bool:
        return obj.is_expired()

    def validate(self, attrs):
        if self.instance is None:
            if not attrs.get("payment_token"):
                raise serializers.ValidationError(
                    {"payment_token": "Payment token is required. Payment data must be tokenized first."}
                )
        else:
            for field in ("payment_token", "organization", "payment_type", "last_four"):
                if field in attrs and attrs[field] != getattr(self.instance, field):
                    raise serializers.ValidationError(
                        {field: "Cannot be changed; remove the method and add a new one."}
                    )
        return attrs
