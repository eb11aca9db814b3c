from rest_framework import serializers

from favorites.models import Favorite


class FavoriteSerializer(serializers.ModelSerializer):
    product_id = serializers.UUIDField(source="product.id", read_only=True)
    external_id = serializers.IntegerField(source="product.external_id", read_only=True)
    name = serializers.CharField(source="product.name", read_only=True)
    image_url = serializers.CharField(source="product.image_url", read_only=True)

    class Meta:
        model = Favorite
        fields = ["id", "product_id", "external_id", "name", "image_url", "created_at"]
        read_only_fields = fields


class FavoriteInputSerializer(serializers.Serializer):
    product_id = serializers.UUIDField()
