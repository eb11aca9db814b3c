# favorites/views.py

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from favorites.models import Favorite
from favorites.serializers import FavoriteInputSerializer, FavoriteSerializer
from favorites.services.favorites import (
    FavoriteProductNotFound,
    add_favorite,
    favorite_product_ids,
    remove_favorite,
    toggle_favorite,
)


def _not_found(exc):
    return Response({"detail": str(exc)}, status=status.HTTP_404_NOT_FOUND)


class FavoriteListView(APIView):
    """GET: favorites with product info (?ids=true for bare ids). POST: add."""

    permission_classes = [IsAuthenticated]
    serializer_class = FavoriteSerializer

    @extend_schema(responses={200: FavoriteSerializer(many=True)})
    def get(self, request):
        if request.query_params.get("ids") == "true":
            return Response({"product_ids": favorite_product_ids(request.user)})
        rows = Favorite.objects.filter(user=request.user).select_related("product")
        return Response(FavoriteSerializer(rows, many=True).data)

    @extend_schema(request=FavoriteInputSerializer, responses={201: FavoriteSerializer, 200: FavoriteSerializer})
    def post(self, request):
        s = FavoriteInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        try:
            favorite, created = add_favorite(request.user, s.validated_data["product_id"])
        except FavoriteProductNotFound as exc:
            return _not_found(exc)
        return Response(
            FavoriteSerializer(favorite).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )


class FavoriteDetailView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(responses={204: None})
    def delete(self, request, product_id):
        remove_favorite(request.user, product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class FavoriteToggleView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(request=FavoriteInputSerializer)
    def post(self, request):
        s = FavoriteInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        product_id = s.validated_data["product_id"]
        try:
            is_favorite = toggle_favorite(request.user, product_id)
        except FavoriteProductNotFound as exc:
            return _not_found(exc)
        return Response({"product_id": str(product_id), "is_favorite": is_favorite})
