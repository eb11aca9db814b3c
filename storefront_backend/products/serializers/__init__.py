from .product import ProductAdminSerializer, ProductSerializer

__all__ = [
    "ProductSerializer",
    "ProductAdminSerializer",
]
