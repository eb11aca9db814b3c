# products/serializers/product.py

"""
PRODUCT SERIALIZERS

- ProductSerializer: storefront read shape (cost_price stripped unless costs.view)
- ProductAdminSerializer: local policy fields admins may edit
"""

from rest_framework import serializers

from permissions.roles import CAP_COSTS_VIEW, user_has_capability
from products.models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    GUARANTEES:
    - cost_price never leaves the API for callers without costs.view
    - regular_price is what a customer pays without a contract
    """

    regular_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)

    class Meta:
        model = Product
        fields = [
            "id",
            "external_id",
            "sku",
            "name",
            "description",
            "brand",
            "image_url",
            "retail_price",
            "sale_price",
            "regular_price",
            "cost_price",
            "allow_markup",
            "is_visible",
            "is_active",
            "last_synced_at",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get("request")
        user = getattr(request, "user", None)
        if not user_has_capability(user, CAP_COSTS_VIEW):
            data.pop("cost_price", None)
        return data


class ProductAdminSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ["allow_markup", "cost_price", "is_visible", "is_active"]

    def validate_cost_price(self, value):
        if value is not None and value < 0:
            raise serializers.ValidationError("Cost price must be non-negative")
        return value
