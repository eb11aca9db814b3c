from rest_framework import serializers

from organizations.models import Location, Organization
from products.models import Product
from subscriptions.models import RecurringOrder, RecurringOrderHistory
from users.models import CustomerAddress


class RecurringOrderSerializer(serializers.ModelSerializer):
    product = serializers.PrimaryKeyRelatedField(
        queryset=Product.objects.filter(is_active=True, is_visible=True)
    )
    organization = serializers.PrimaryKeyRelatedField(
        queryset=Organization.objects.filter(is_active=True), required=False, allow_null=True
    )
    location = serializers.PrimaryKeyRelatedField(
        queryset=Location.objects.filter(is_active=True), required=False, allow_null=True
    )
    shipping_address = serializers.PrimaryKeyRelatedField(
        queryset=CustomerAddress.objects.filter(is_active=True), required=False, allow_null=True
    )
    product_name = serializers.CharField(source="product.name", read_only=True)
    user_email = serializers.EmailField(source="user.email", read_only=True)
    frequency_display = serializers.CharField(read_only=True)

    class Meta:
        model = RecurringOrder
        fields = [
            "id",
            "user",
            "user_email",
            "organization",
            "location",
            "product",
            "product_name",
            "shipping_address",
            "quantity",
            "frequency",
            "frequency_interval",
            "frequency_display",
            "status",
            "start_date",
            "end_date",
            "next_order_date",
            "last_order_date",
            "discount_percentage",
            "total_orders",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "user",
            "status",
            "next_order_date",
            "last_order_date",
            "total_orders",
            "created_at",
            "updated_at",
        ]
        # validators run in the model's full_clean()
        validators = []

    def validate_quantity(self, value):
        if value < 1:
            raise serializers.ValidationError("quantity must be >= 1")
        return value

    def validate(self, attrs):
        start = attrs.get("start_date", getattr(self.instance, "start_date", None))
        end = attrs.get("end_date", getattr(self.instance, "end_date", None))
        if start and end and end < start:
            raise serializers.ValidationError({"end_date": "end_date cannot be before start_date."})
        return attrs


class RecurringOrderHistorySerializer(serializers.ModelSerializer):
    order_no = serializers.CharField(source="order.order_no", read_only=True, default=None)

    class Meta:
        model = RecurringOrderHistory
        fields = [
            "id",
            "recurring_order",
            "order",
            "order_no",
            "status",
            "scheduled_date",
            "processed_date",
            "amount",
            "error_message",
            "retry_count",
            "created_at",
        ]
        read_only_fields = fields
