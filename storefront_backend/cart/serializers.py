"""
PATH: cart/serializers.py

Cart read shapes plus request serializers for the cart endpoints.
Money fields are read-only; totals are always server-derived.
"""

from rest_framework import serializers

from cart.models import Cart, CartItem


class CartItemSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    product_name = serializers.CharField(source="product.name", read_only=True)
    external_id = serializers.IntegerField(source="product.external_id", read_only=True)
    image_url = serializers.CharField(source="product.image_url", read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "product_id",
            "external_id",
            "product_name",
            "image_url",
            "quantity",
            "unit_price",
            "regular_price",
            "price_source",
            "contract_price_id",
            "is_markup",
            "line_total",
            "created_at",
        ]
        read_only_fields = fields


class CartSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source="organization.name", read_only=True, default=None)
    location_name = serializers.CharField(source="location.name", read_only=True, default=None)

    items = CartItemSerializer(many=True, read_only=True)

    item_count = serializers.IntegerField(read_only=True)
    subtotal_amount = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = [
            "id",
            "organization",
            "organization_name",
            "location",
            "location_name",
            "is_active",
            "items",
            "item_count",
            "subtotal_amount",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_subtotal_amount(self, obj) -> str:
        return f"{obj.subtotal_amount:.2f}"


class AddCartItemInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class UpdateCartItemInputSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class CartContextInputSerializer(serializers.Serializer):
    organization_id = serializers.UUIDField(required=False, allow_null=True)
    location_id = serializers.UUIDField(required=False, allow_null=True)
