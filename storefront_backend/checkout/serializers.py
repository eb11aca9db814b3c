"""
PATH: checkout/serializers.py

Checkout session read shape + request serializers.
Money is server-owned: clients send product ids and quantities only.
"""

from rest_framework import serializers

from checkout.models import CheckoutSession


class CheckoutSessionSerializer(serializers.ModelSerializer):
    is_expired = serializers.BooleanField(read_only=True)
    order_id = serializers.SerializerMethodField()

    class Meta:
        model = CheckoutSession
        fields = [
            "id",
            "status",
            "step",
            "organization",
            "location",
            "cart_id",
            "checkout_id",
            "cart_items",
            "billing_address",
            "shipping_address",
            "payment_method",
            "subtotal",
            "tax",
            "shipping",
            "total",
            "currency",
            "retry_count",
            "last_error",
            "error_log",
            "idempotency_key",
            "metadata",
            "order_id",
            "is_expired",
            "expires_at",
            "completed_at",
            "abandoned_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_order_id(self, obj):
        order = getattr(obj, "order", None)
        return str(order.pk) if order is not None else None


class CheckoutResultSerializer(serializers.Serializer):
    success = serializers.BooleanField()
    session_id = serializers.CharField(allow_null=True)
    cart_id = serializers.CharField(allow_null=True)
    checkout_id = serializers.CharField(allow_null=True)
    order_id = serializers.CharField(allow_null=True)
    error = serializers.CharField(allow_null=True)
    can_retry = serializers.BooleanField()


class CheckoutItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateCheckoutSessionInputSerializer(serializers.Serializer):
    """Without items the active cart is checked out."""

    items = CheckoutItemInputSerializer(many=True, required=False)
    organization_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(
        choices=[c[0] for c in CheckoutSession.PAYMENT_CHOICES],
        default=CheckoutSession.PAYMENT_ONLINE,
    )
    idempotency_key = serializers.CharField(max_length=100, required=False, allow_blank=False)


class AddressInputSerializer(serializers.Serializer):
    first_name = serializers.CharField(max_length=100)
    last_name = serializers.CharField(max_length=100)
    email = serializers.EmailField(required=False, allow_blank=True)
    company = serializers.CharField(max_length=200, required=False, allow_blank=True)
    address1 = serializers.CharField(max_length=255)
    address2 = serializers.CharField(max_length=255, required=False, allow_blank=True)
    city = serializers.CharField(max_length=120)
    state_or_province = serializers.CharField(max_length=120)
    postal_code = serializers.CharField(max_length=20)
    country_code = serializers.CharField(max_length=2, default="US")
    phone = serializers.CharField(max_length=40, required=False, allow_blank=True)


class ProcessCheckoutInputSerializer(serializers.Serializer):
    billing_address = AddressInputSerializer(required=False)
    billing_address_id = serializers.UUIDField(required=False)
    shipping_address = AddressInputSerializer(required=False)
    shipping_address_id = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if not attrs.get("billing_address") and not attrs.get("billing_address_id"):
            raise serializers.ValidationError(
                {"billing_address": "Provide billing_address or billing_address_id."}
            )
        return attrs


class CompleteCheckoutInputSerializer(serializers.Serializer):
    external_order_id = serializers.CharField(max_length=64, required=False, allow_blank=True)
