# checkout/views.py

"""
CHECKOUT API

Endpoints (all authenticated, scoped to the caller's own sessions):
- POST   /api/checkout/                     create session (priced snapshot)
- GET    /api/checkout/                     active sessions (?all=true for history)
- GET    /api/checkout/<id>/                session detail
- POST   /api/checkout/<id>/cart/           create BigCommerce cart
- POST   /api/checkout/<id>/process/        attach addresses, create checkout
- POST   /api/checkout/<id>/complete/       create the internal order
- POST   /api/checkout/<id>/recover/        resume from the last reached step
- POST   /api/checkout/<id>/abandon/

Result mapping:
- success                 -> 200
- failed, retryable       -> 502 (platform trouble, try again)
- failed, not retryable   -> 409
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from cart.services.cart import get_active_cart
from checkout.models import CheckoutSession
from checkout.serializers import (
    CheckoutResultSerializer,
    CheckoutSessionSerializer,
    CompleteCheckoutInputSerializer,
    CreateCheckoutSessionInputSerializer,
    ProcessCheckoutInputSerializer,
)
from checkout.services.checkout import (
    AddressNotFoundError,
    CheckoutStateError,
    EmptyCheckoutError,
    IdempotencyConflictError,
    abandon_session,
    active_sessions,
    complete_checkout,
    create_cart_with_retry,
    create_session,
    process_checkout,
    recover_session,
    resolve_address,
)
from pricing.services.exceptions import PricingScopeError
from pricing.services.scope import load_context
from products.models import Product

logger = logging.getLogger(__name__)

WRITE_ACTIONS = {"create", "cart", "process", "complete", "recover", "abandon"}


class CheckoutWriteThrottle(UserRateThrottle):
    scope = "checkout_write"


def error_response(*, code: str, message: str, http_status: int):
    return Response({"error": {"code": code, "message": message}}, status=http_status)


def _result_response(session: CheckoutSession, result) -> Response:
    if result.success:
        http_status = status.HTTP_200_OK
    elif result.can_retry:
        http_status = status.HTTP_502_BAD_GATEWAY
    else:
        http_status = status.HTTP_409_CONFLICT

    session.refresh_from_db()
    return Response(
        {**result.as_dict(), "session": CheckoutSessionSerializer(session).data},
        status=http_status,
    )


class CheckoutSessionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    permission_classes = [IsAuthenticated]
    serializer_class = CheckoutSessionSerializer

    def get_queryset(self):
        user = self.request.user
        if self.action == "list" and self.request.query_params.get("all", "").lower() not in ("1", "true", "yes"):
            return active_sessions(user)
        return CheckoutSession.objects.filter(user=user).select_related("organization", "location")

    def get_throttles(self):
        if self.action in WRITE_ACTIONS:
            return [CheckoutWriteThrottle()]
        return super().get_throttles()

    # ----------------------------
    # create
    # ----------------------------
    @extend_schema(
        request=CreateCheckoutSessionInputSerializer,
        responses={
            201: CheckoutSessionSerializer,
            200: OpenApiResponse(description="Existing session for the idempotency key"),
            400: OpenApiResponse(description="Empty cart / unavailable product"),
            403: OpenApiResponse(description="Context outside memberships"),
        },
    )
    def create(self, request):
        s = CreateCheckoutSessionInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            location, organization = load_context(
                request.user,
                location_id=data.get("location_id"),
                organization_id=data.get("organization_id"),
            )
        except PricingScopeError as exc:
            return error_response(code="CONTEXT_FORBIDDEN", message=str(exc), http_status=status.HTTP_403_FORBIDDEN)

        items = None
        cart = None
        if data.get("items"):
            ids = [line["product_id"] for line in data["items"]]
            products = {
                p.pk: p for p in Product.objects.filter(pk__in=ids, is_active=True, is_visible=True)
            }
            missing = [str(pk) for pk in ids if pk not in products]
            if missing:
                return error_response(
                    code="PRODUCT_UNAVAILABLE",
                    message=f"Products not available: {', '.join(missing)}",
                    http_status=status.HTTP_400_BAD_REQUEST,
                )
            items = [(products[line["product_id"]], line["quantity"]) for line in data["items"]]
        else:
            cart = get_active_cart(request.user)

        try:
            session, created = create_session(
                request.user,
                items=items,
                cart=cart,
                organization=organization,
                location=location,
                payment_method=data["payment_method"],
                idempotency_key=data.get("idempotency_key"),
            )
        except EmptyCheckoutError as exc:
            return error_response(code="EMPTY_CART", message=str(exc), http_status=status.HTTP_400_BAD_REQUEST)
        except IdempotencyConflictError as exc:
            return error_response(code="IDEMPOTENCY_CONFLICT", message=str(exc), http_status=status.HTTP_409_CONFLICT)

        return Response(
            CheckoutSessionSerializer(session).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    # ----------------------------
    # external steps
    # ----------------------------
    @extend_schema(request=None, responses={200: CheckoutResultSerializer})
    @action(detail=True, methods=["post"])
    def cart(self, request, pk=None):
        session = self.get_object()
        if session.status in (CheckoutSession.STATUS_COMPLETED, CheckoutSession.STATUS_ABANDONED):
            return error_response(
                code="SESSION_CLOSED",
                message=f"Session is {session.status}.",
                http_status=status.HTTP_409_CONFLICT,
            )
        return _result_response(session, create_cart_with_retry(session))

    @extend_schema(request=ProcessCheckoutInputSerializer, responses={200: CheckoutResultSerializer})
    @action(detail=True, methods=["post"])
    def process(self, request, pk=None):
        session = self.get_object()
        if session.status in (CheckoutSession.STATUS_COMPLETED, CheckoutSession.STATUS_ABANDONED):
            return error_response(
                code="SESSION_CLOSED",
                message=f"Session is {session.status}.",
                http_status=status.HTTP_409_CONFLICT,
            )

        s = ProcessCheckoutInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)
        data = s.validated_data

        try:
            billing = resolve_address(
                request.user,
                address=data.get("billing_address"),
                address_id=data.get("billing_address_id"),
            )
            shipping = resolve_address(
                request.user,
                address=data.get("shipping_address"),
                address_id=data.get("shipping_address_id"),
            ) or billing
        except AddressNotFoundError as exc:
            return error_response(code="ADDRESS_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND)

        result = process_checkout(session, billing_address=billing, shipping_address=shipping)
        return _result_response(session, result)

    @extend_schema(request=CompleteCheckoutInputSerializer, responses={200: CheckoutResultSerializer})
    @action(detail=True, methods=["post"])
    def complete(self, request, pk=None):
        session = self.get_object()
        s = CompleteCheckoutInputSerializer(data=request.data)
        s.is_valid(raise_exception=True)

        result = complete_checkout(session, external_order_id=s.validated_data.get("external_order_id") or None)
        return _result_response(session, result)

    @extend_schema(request=None, responses={200: CheckoutResultSerializer})
    @action(detail=True, methods=["post"])
    def recover(self, request, pk=None):
        session = self.get_object()
        return _result_response(session, recover_session(session))

    @extend_schema(request=None, responses={200: CheckoutSessionSerializer})
    @action(detail=True, methods=["post"])
    def abandon(self, request, pk=None):
        session = self.get_object()
        try:
            abandon_session(session)
        except CheckoutStateError as exc:
            return error_response(code="SESSION_COMPLETED", message=str(exc), http_status=status.HTTP_409_CONFLICT)
        return Response(CheckoutSessionSerializer(session).data, status=status.HTTP_200_OK)
