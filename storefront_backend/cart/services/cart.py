"""
PATH: cart/services/cart.py

CART SERVICE

Every mutation re-prices the touched line(s) through pricing.resolve_price, so
crossing a quantity tier or switching organization/location context always
shows the price checkout will charge.
"""

from __future__ import annotations

import logging

from django.db import transaction

from cart.models import Cart, CartItem
from pricing.services.resolver import resolve_price
from pricing.services.scope import load_context
from products.models import Product

logger = logging.getLogger(__name__)


class CartError(Exception):
    pass


class ProductUnavailableError(CartError):
    pass


class CartItemNotFoundError(CartError):
    pass


def get_active_cart(user) -> Cart:
    """Exactly one active cart per user."""
    cart = Cart.objects.filter(user=user, is_active=True).select_related("organization", "location").first()
    if cart is None:
        cart = Cart.objects.create(user=user, is_active=True)
    return cart


def _price_line(cart: Cart, item: CartItem) -> CartItem:
    quote = resolve_price(
        cart.user,
        item.product,
        item.quantity,
        location=cart.location,
        organization=cart.organization,
    )
    item.apply_quote(quote)
    return item


def _get_item(cart: Cart, item_id) -> CartItem:
    item = cart.items.select_related("product").filter(pk=item_id).first()
    if item is None:
        raise CartItemNotFoundError("Cart item not found.")
    return item


@transaction.atomic
def add_item(user, *, product_id, quantity: int = 1) -> Cart:
    product = Product.objects.filter(pk=product_id, is_active=True, is_visible=True).first()
    if product is None:
        raise ProductUnavailableError("Product not found or unavailable.")

    cart = get_active_cart(user)
    item = cart.items.select_related("product").filter(product=product).first()
    if item is None:
        item = CartItem(cart=cart, product=product, quantity=int(quantity))
    else:
        item.quantity = int(item.quantity) + int(quantity)

    _price_line(cart, item).save()
    return cart


@transaction.atomic
def update_item(user, *, item_id, quantity: int) -> Cart:
    cart = get_active_cart(user)
    item = _get_item(cart, item_id)
    item.quantity = int(quantity)
    _price_line(cart, item).save()
    return cart


@transaction.atomic
def remove_item(user, *, item_id) -> Cart:
    cart = get_active_cart(user)
    _get_item(cart, item_id).delete()
    return cart


@transaction.atomic
def clear_cart(user) -> Cart:
    cart = get_active_cart(user)
    cart.items.all().delete()
    return cart


@transaction.atomic
def set_context(user, *, organization_id=None, location_id=None) -> Cart:
    """
    Raises pricing.services.exceptions.PricingScopeError for context outside
    the user's memberships.
    """
    location, organization = load_context(
        user, location_id=location_id, organization_id=organization_id
    )

    cart = get_active_cart(user)
    cart.organization = organization
    cart.location = location
    cart.save()

    reprice_cart(cart)
    logger.info(
        "Cart context changed",
        extra={
            "cart_id": str(cart.pk),
            "organization_id": str(organization.pk) if organization else None,
            "location_id": str(location.pk) if location else None,
        },
    )
    return cart


def reprice_cart(cart: Cart) -> Cart:
    for item in cart.items.select_related("product"):
        _price_line(cart, item).save()
    return cart


def deactivate_cart(cart: Cart) -> None:
    """Called once checkout completes: empty the cart and close it."""
    cart.items.all().delete()
    cart.is_active = False
    cart.save(update_fields=["is_active", "updated_at"])
