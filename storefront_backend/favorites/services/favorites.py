"""
PATH: favorites/services/favorites.py

Favorites are a per-user set of product ids; add/remove are idempotent.
"""

from __future__ import annotations

from favorites.models import Favorite
from products.models import Product


class FavoriteProductNotFound(Exception):
    pass


def _product(product_id) -> Product:
    product = Product.objects.filter(pk=product_id, is_active=True).first()
    if product is None:
        raise FavoriteProductNotFound("Product not found.")
    return product


def favorite_product_ids(user) -> list[str]:
    return [str(pk) for pk in Favorite.objects.filter(user=user).values_list("product_id", flat=True)]


def add_favorite(user, product_id) -> tuple[Favorite, bool]:
    return Favorite.objects.get_or_create(user=user, product=_product(product_id))


def remove_favorite(user, product_id) -> bool:
    deleted, _ = Favorite.objects.filter(user=user, product_id=product_id).delete()
    return bool(deleted)


def toggle_favorite(user, product_id) -> bool:
    """Returns True when the product is a favorite afterwards."""
    if remove_favorite(user, product_id):
        return False
    add_favorite(user, product_id)
    return True
