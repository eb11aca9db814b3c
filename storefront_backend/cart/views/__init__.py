from .api import (
    ActiveCartView,
    AddCartItemView,
    CartContextView,
    ClearCartView,
    RemoveCartItemView,
    UpdateCartItemView,
)

__all__ = [
    "ActiveCartView",
    "AddCartItemView",
    "CartContextView",
    "ClearCartView",
    "RemoveCartItemView",
    "UpdateCartItemView",
]
