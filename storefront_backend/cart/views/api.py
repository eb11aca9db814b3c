# cart/views/api.py

"""
CART API VIEWS

Purpose:
- Active cart lifecycle for the authenticated customer
- Add / update / remove / clear items (server-owned pricing)
- Set the organization / location pricing context

Hard rules:
- Money is server-owned: unit_price is the resolved contract price, never client input.
- Context outside the user's memberships is rejected with 403.
"""

from __future__ import annotations

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from cart.serializers import (
    AddCartItemInputSerializer,
    CartContextInputSerializer,
    CartSerializer,
    UpdateCartItemInputSerializer,
)
from cart.services.cart import (
    CartItemNotFoundError,
    ProductUnavailableError,
    add_item,
    clear_cart,
    get_active_cart,
    remove_item,
    set_context,
    update_item,
)
from pricing.services.exceptions import PricingScopeError


# =====================================================
# API ERROR NORMALIZATION
# =====================================================


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


def _cart_response(cart):
    return Response(CartSerializer(cart).data, status=status.HTTP_200_OK)


# =====================================================
# CART VIEWS
# =====================================================


class ActiveCartView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(responses={200: CartSerializer}, description="Get or create the active cart")
    def get(self, request):
        return _cart_response(get_active_cart(request.user))


class AddCartItemView(APIView):
    """Add a product (increments quantity when already in the cart)."""

    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(request=AddCartItemInputSerializer, responses={200: CartSerializer})
    def post(self, request):
        serializer = AddCartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            cart = add_item(
                request.user,
                product_id=serializer.validated_data["product_id"],
                quantity=serializer.validated_data["quantity"],
            )
        except ProductUnavailableError as exc:
            return error_response(
                code="PRODUCT_UNAVAILABLE",
                message=str(exc),
                http_status=status.HTTP_404_NOT_FOUND,
            )
        return _cart_response(cart)


class UpdateCartItemView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(request=UpdateCartItemInputSerializer, responses={200: CartSerializer})
    def patch(self, request, item_id):
        serializer = UpdateCartItemInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            cart = update_item(
                request.user,
                item_id=item_id,
                quantity=serializer.validated_data["quantity"],
            )
        except CartItemNotFoundError as exc:
            return error_response(code="ITEM_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND)
        return _cart_response(cart)


class RemoveCartItemView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(responses={200: CartSerializer})
    def delete(self, request, item_id):
        try:
            cart = remove_item(request.user, item_id=item_id)
        except CartItemNotFoundError as exc:
            return error_response(code="ITEM_NOT_FOUND", message=str(exc), http_status=status.HTTP_404_NOT_FOUND)
        return _cart_response(cart)


class ClearCartView(APIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(responses={200: CartSerializer})
    def delete(self, request):
        return _cart_response(clear_cart(request.user))


class CartContextView(APIView):
    """
    Set (or clear, with nulls) the organization / location the cart is priced for.
    Every line is re-priced.
    """

    permission_classes = [IsAuthenticated]
    serializer_class = CartSerializer

    @extend_schema(request=CartContextInputSerializer, responses={200: CartSerializer})
    def put(self, request):
        serializer = CartContextInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            cart = set_context(
                request.user,
                organization_id=serializer.validated_data.get("organization_id"),
                location_id=serializer.validated_data.get("location_id"),
            )
        except PricingScopeError as exc:
            return error_response(code="CONTEXT_FORBIDDEN", message=str(exc), http_status=status.HTTP_403_FORBIDDEN)
        return _cart_response(cart)
