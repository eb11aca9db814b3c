# products/views/product.py

"""
PRODUCT VIEWSET

Purpose:
- Storefront catalog browsing (AllowAny, active + visible products only)
- Admin policy edits (allow_markup, cost_price, visibility)
- Admin-triggered catalog sync from the commerce platform
"""

from django.db.models import Q
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import AnonRateThrottle

from commerce.exceptions import CommerceError
from permissions.roles import (
    CAP_CATALOG_SYNC,
    CAP_PRICING_MANAGE,
    HasCapability,
    user_has_capability,
)
from products.models import Product
from products.serializers import ProductAdminSerializer, ProductSerializer
from products.services.catalog_sync import sync_catalog


class PublicCatalogThrottle(AnonRateThrottle):
    scope = "public_catalog"


class ProductViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.UpdateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Public:
    - GET /products/?q=<search>
    - GET /products/<id>/

    Admin (pricing.manage):
    - PATCH /products/<id>/   allow_markup / cost_price / visibility
    - GET  /products/?include_inactive=true

    Admin (catalog.sync):
    - POST /products/sync/
    """

    serializer_class = ProductSerializer
    required_capability = CAP_PRICING_MANAGE

    def get_permissions(self):
        if self.action in {"list", "retrieve"}:
            return [AllowAny()]
        return [IsAuthenticated(), HasCapability()]

    def get_throttles(self):
        if self.action in {"list", "retrieve"}:
            return [PublicCatalogThrottle()]
        return super().get_throttles()

    def get_serializer_class(self):
        if self.action in {"update", "partial_update"}:
            return ProductAdminSerializer
        return ProductSerializer

    def get_queryset(self):
        qs = Product.objects.all()
        user = self.request.user
        show_all = (
            self.request.query_params.get("include_inactive") == "true"
            and user_has_capability(user, CAP_PRICING_MANAGE)
        )
        if not show_all and self.action in {"list", "retrieve"}:
            qs = qs.filter(is_active=True, is_visible=True)

        q = (self.request.query_params.get("q") or "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(sku__icontains=q))
        return qs.order_by("name")

    @extend_schema(
        parameters=[
            OpenApiParameter(name="q", required=False, type=str),
            OpenApiParameter(name="include_inactive", required=False, type=bool),
        ],
        responses={200: ProductSerializer(many=True)},
    )
    def list(self, request, *args, **kwargs):
        return super().list(request, *args, **kwargs)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        product = self.get_object()
        serializer = ProductAdminSerializer(product, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(ProductSerializer(product, context={"request": request}).data)

    @extend_schema(request=None, responses={200: dict})
    @action(
        detail=False,
        methods=["post"],
        url_path="sync",
        required_capability=CAP_CATALOG_SYNC,
    )
    def sync(self, request):
        try:
            result = sync_catalog()
        except CommerceError as e:
            return Response(
                {"error": {"code": "commerce_unavailable", "message": str(e)}},
                status=status.HTTP_502_BAD_GATEWAY,
            )
        return Response(result.as_dict())
