from __future__ import annotations

from rest_framework import serializers

from pricing.models import ContractPrice


class ContractPriceSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    product_external_id = serializers.IntegerField(source="product.external_id", read_only=True)
    user_email = serializers.EmailField(source="user.email", read_only=True, default=None)
    organization_name = serializers.CharField(source="organization.name", read_only=True, default=None)
    location_name = serializers.CharField(source="location.name", read_only=True, default=None)
    effective_price = serializers.DecimalField(
        source="price", max_digits=10, decimal_places=2, read_only=True
    )
    created_by_email = serializers.EmailField(source="created_by.email", read_only=True, default=None)

    class Meta:
        model = ContractPrice
        fields = [
            "id",
            "pricing_type",
            "user",
            "user_email",
            "organization",
            "organization_name",
            "location",
            "location_name",
            "product",
            "product_name",
            "product_external_id",
            "contract_price",
            "markup_price",
            "effective_price",
            "min_quantity",
            "max_quantity",
            "effective_date",
            "expiry_date",
            "allow_below_cost",
            "override_reason",
            "notes",
            "created_by_email",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "created_at", "updated_at"]
        # Model-level rules are enforced by pricing.services.contracts.
        validators = []
        extra_kwargs = {
            "effective_date": {"required": False},
        }

    def validate(self, attrs):
        pricing_type = attrs.get("pricing_type") or getattr(self.instance, "pricing_type", None)
        field = ContractPrice.ENTITY_FIELD.get(pricing_type)
        if field and self.instance is None and not attrs.get(field):
            raise serializers.ValidationError({field: f"{field} is required for {pricing_type} pricing."})
        return attrs


class PriceQuoteSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    external_id = serializers.IntegerField()
    quantity = serializers.IntegerField()
    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2)
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    savings = serializers.DecimalField(max_digits=10, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    source = serializers.CharField()
    contract_price_id = serializers.UUIDField(allow_null=True)
    is_markup = serializers.BooleanField()
    min_quantity = serializers.IntegerField(allow_null=True)
    max_quantity = serializers.IntegerField(allow_null=True)


class EffectivePriceQuerySerializer(serializers.Serializer):
    product = serializers.UUIDField(required=False)
    external_id = serializers.IntegerField(required=False)
    quantity = serializers.IntegerField(min_value=1, default=1)
    location = serializers.UUIDField(required=False)
    organization = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if not attrs.get("product") and attrs.get("external_id") is None:
            raise serializers.ValidationError("product or external_id is required.")
        return attrs


class QuoteLineSerializer(serializers.Serializer):
    product = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class QuoteRequestSerializer(serializers.Serializer):
    items = QuoteLineSerializer(many=True, allow_empty=False)
    location = serializers.UUIDField(required=False)
    organization = serializers.UUIDField(required=False)
