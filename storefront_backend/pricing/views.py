"""
PATH: pricing/views.py

CONTRACT PRICING API

Admin (pricing.view / pricing.manage):
- GET/POST          /pricing/contract-prices/
- GET/PATCH/DELETE  /pricing/contract-prices/<id>/
- GET               /pricing/contract-prices/summary/   (per-product counts)

Any authenticated user:
- GET /pricing/contract-prices/mine/   (rows that currently apply to me)

Storefront (anonymous gets regular prices):
- GET  /pricing/effective/?product=<uuid>&quantity=<n>&location=&organization=
- POST /pricing/quote/   {"items": [{"product", "quantity"}], "location", "organization"}
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, Q
from django.utils import timezone
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from organizations.services.membership import accessible_locations, organization_ids_for
from permissions.roles import CAP_PRICING_MANAGE, CAP_PRICING_VIEW, HasCapability
from pricing.models import ContractPrice
from pricing.serializers import (
    ContractPriceSerializer,
    EffectivePriceQuerySerializer,
    PriceQuoteSerializer,
    QuoteRequestSerializer,
)
from pricing.services.contracts import (
    create_contract_price,
    delete_contract_price,
    update_contract_price,
    validation_payload,
)
from pricing.services.exceptions import (
    PricingConflictError,
    PricingPermissionError,
    PricingScopeError,
)
from pricing.services.resolver import resolve_price
from pricing.services.scope import load_context
from products.models import Product

logger = logging.getLogger(__name__)


def _pricing_error_response(exc: Exception) -> Response:
    if isinstance(exc, PricingConflictError):
        return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, (PricingPermissionError, PricingScopeError)):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, DjangoValidationError):
        if getattr(exc, "code", None) == "pricing_conflict":
            return Response({"detail": exc.messages[0]}, status=status.HTTP_409_CONFLICT)
        return Response(validation_payload(exc), status=status.HTTP_400_BAD_REQUEST)
    raise exc


class ContractPriceViewSet(viewsets.ModelViewSet):
    serializer_class = ContractPriceSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    filterset_fields = ["product", "pricing_type", "user", "organization", "location"]

    @property
    def required_capability(self):
        if self.request.method in permissions.SAFE_METHODS:
            return CAP_PRICING_VIEW
        return CAP_PRICING_MANAGE

    def get_queryset(self):
        qs = ContractPrice.objects.select_related(
            "product", "user", "organization", "location", "created_by"
        )
        if self.request.query_params.get("active") == "true":
            now = timezone.now()
            qs = qs.filter(effective_date__lte=now).filter(
                Q(expiry_date__isnull=True) | Q(expiry_date__gte=now)
            )
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            instance = create_contract_price(serializer.validated_data, actor=request.user)
        except (PricingConflictError, PricingPermissionError, DjangoValidationError) as e:
            return _pricing_error_response(e)
        return Response(self.get_serializer(instance).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        instance = self.get_object()
        serializer = self.get_serializer(instance, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        try:
            instance = update_contract_price(instance, serializer.validated_data, actor=request.user)
        except (PricingConflictError, PricingPermissionError, DjangoValidationError) as e:
            return _pricing_error_response(e)
        return Response(self.get_serializer(instance).data)

    def perform_destroy(self, instance):
        delete_contract_price(instance, actor=self.request.user)

    @extend_schema(responses={200: dict})
    @action(detail=False, methods=["get"], url_path="summary")
    def summary(self, request):
        rows = (
            ContractPrice.objects.values("product", "product__name", "product__external_id")
            .annotate(
                total=Count("id"),
                individual=Count("id", filter=Q(pricing_type=ContractPrice.TYPE_INDIVIDUAL)),
                organization=Count("id", filter=Q(pricing_type=ContractPrice.TYPE_ORGANIZATION)),
                location=Count("id", filter=Q(pricing_type=ContractPrice.TYPE_LOCATION)),
                markups=Count("id", filter=Q(markup_price__isnull=False)),
            )
            .order_by("product__name")
        )
        return Response(
            [
                {
                    "product_id": str(row["product"]),
                    "product_name": row["product__name"],
                    "external_id": row["product__external_id"],
                    "total": row["total"],
                    "individual": row["individual"],
                    "organization": row["organization"],
                    "location": row["location"],
                    "markups": row["markups"],
                }
                for row in rows
            ]
        )

    @extend_schema(responses={200: ContractPriceSerializer(many=True)})
    @action(
        detail=False,
        methods=["get"],
        url_path="mine",
        permission_classes=[IsAuthenticated],
    )
    def mine(self, request):
        user = request.user
        if not user.is_pricing_eligible:
            return Response([])

        now = timezone.now()
        qs = (
            ContractPrice.objects.select_related("product", "user", "organization", "location")
            .filter(effective_date__lte=now)
            .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gte=now))
            .filter(
                Q(pricing_type=ContractPrice.TYPE_INDIVIDUAL, user=user)
                | Q(
                    pricing_type=ContractPrice.TYPE_ORGANIZATION,
                    organization_id__in=organization_ids_for(user),
                )
                | Q(
                    pricing_type=ContractPrice.TYPE_LOCATION,
                    location__in=accessible_locations(user),
                )
            )
        )
        return Response(ContractPriceSerializer(qs, many=True).data)


class EffectivePriceView(APIView):
    """
    Price a single product for the caller.

    Explicit context the caller cannot reach is a 403, not a silent fallback.
    """

    permission_classes = [AllowAny]

    @extend_schema(
        parameters=[
            OpenApiParameter(name="product", required=False, type=str),
            OpenApiParameter(name="external_id", required=False, type=int),
            OpenApiParameter(name="quantity", required=False, type=int),
            OpenApiParameter(name="location", required=False, type=str),
            OpenApiParameter(name="organization", required=False, type=str),
        ],
        responses={200: PriceQuoteSerializer},
    )
    def get(self, request):
        query = EffectivePriceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        params = query.validated_data

        products = Product.objects.filter(is_active=True)
        if params.get("product"):
            product = products.filter(pk=params["product"]).first()
        else:
            product = products.filter(external_id=params["external_id"]).first()
        if product is None:
            return Response({"detail": "Product not found."}, status=status.HTTP_404_NOT_FOUND)

        location = organization = None
        if request.user.is_authenticated:
            try:
                location, organization = load_context(
                    request.user,
                    location_id=params.get("location"),
                    organization_id=params.get("organization"),
                )
            except PricingScopeError as e:
                return _pricing_error_response(e)

        quote = resolve_price(
            request.user,
            product,
            params["quantity"],
            location=location,
            organization=organization,
        )
        return Response(PriceQuoteSerializer(quote).data)


class QuoteView(APIView):
    permission_classes = [AllowAny]

    @extend_schema(request=QuoteRequestSerializer, responses={200: dict})
    def post(self, request):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        location = organization = None
        if request.user.is_authenticated:
            try:
                location, organization = load_context(
                    request.user,
                    location_id=data.get("location"),
                    organization_id=data.get("organization"),
                )
            except PricingScopeError as e:
                return _pricing_error_response(e)

        ids = {line["product"] for line in data["items"]}
        products = {p.pk: p for p in Product.objects.filter(pk__in=ids, is_active=True)}
        missing = sorted(str(pk) for pk in ids - set(products))
        if missing:
            return Response(
                {"detail": "Unknown or inactive products.", "products": missing},
                status=status.HTTP_400_BAD_REQUEST,
            )

        quotes = [
            resolve_price(
                request.user,
                products[line["product"]],
                line["quantity"],
                location=location,
                organization=organization,
            )
            for line in data["items"]
        ]
        subtotal = sum((q.line_total for q in quotes), Decimal("0.00"))
        savings = sum((q.savings * q.quantity for q in quotes), Decimal("0.00"))

        return Response(
            {
                "items": PriceQuoteSerializer(quotes, many=True).data,
                "subtotal": str(subtotal),
                "savings": str(savings.quantize(Decimal("0.01"))),
            }
        )
