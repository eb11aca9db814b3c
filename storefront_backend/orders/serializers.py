from rest_framework import serializers

from orders.models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "external_id",
            "name",
            "quantity",
            "unit_price",
            "retail_price",
            "price_source",
            "line_total",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    organization_name = serializers.CharField(source="organization.name", read_only=True, default=None)
    location_name = serializers.CharField(source="location.name", read_only=True, default=None)
    sales_rep_email = serializers.EmailField(source="sales_rep.email", read_only=True, default=None)
    user_email = serializers.EmailField(source="user.email", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_no",
            "user",
            "user_email",
            "organization",
            "organization_name",
            "location",
            "location_name",
            "sales_rep",
            "sales_rep_email",
            "checkout_session",
            "external_order_id",
            "external_cart_id",
            "status",
            "subtotal",
            "tax",
            "shipping",
            "total",
            "currency",
            "shipping_address",
            "billing_address",
            "customer_email",
            "notes",
            "tracking_number",
            "carrier",
            "shipped_at",
            "delivered_at",
            "completed_at",
            "cancelled_at",
            "viewed_at",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderCostItemSerializer(OrderItemSerializer):
    """Adds cost / markup columns for callers with costs.view."""

    class Meta(OrderItemSerializer.Meta):
        fields = OrderItemSerializer.Meta.fields + ["unit_cost", "markup_amount"]
        read_only_fields = fields


class OrderCostSerializer(OrderSerializer):
    items = OrderCostItemSerializer(many=True, read_only=True)


class OrderStatusInputSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[c for c, _ in Order.STATUS_CHOICES])


class ShipmentInputSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(max_length=120)
    carrier = serializers.CharField(max_length=60, required=False, allow_blank=True, default="")
