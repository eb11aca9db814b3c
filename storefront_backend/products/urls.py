# products/urls.py

"""
PRODUCTS URLS

Mounted under /api/products/
    /api/products/             (public list)
    /api/products/<uuid>/      (public retrieve, admin patch)
    /api/products/sync/        (admin catalog sync)
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from products.views import ProductViewSet

app_name = "products"

router = SimpleRouter()
router.register(r"", ProductViewSet, basename="product")

urlpatterns = [
    path("", include(router.urls)),
]
