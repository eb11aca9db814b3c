"""
PATH: cart/urls.py

CART URLS
"""

from django.urls import path

from cart.views import (
    ActiveCartView,
    AddCartItemView,
    CartContextView,
    ClearCartView,
    RemoveCartItemView,
    UpdateCartItemView,
)

app_name = "cart"

urlpatterns = [
    path("", ActiveCartView.as_view(), name="active-cart"),
    path("clear/", ClearCartView.as_view(), name="clear-cart"),
    path("context/", CartContextView.as_view(), name="cart-context"),

    path("items/add/", AddCartItemView.as_view(), name="add-cart-item"),
    path("items/<uuid:item_id>/update/", UpdateCartItemView.as_view(), name="update-cart-item"),
    path("items/<uuid:item_id>/remove/", RemoveCartItemView.as_view(), name="remove-cart-item"),
]
