"""
PATH: checkout/urls.py
"""

from rest_framework.routers import SimpleRouter

from checkout.views import CheckoutSessionViewSet

app_name = "checkout"

router = SimpleRouter()
router.register(r"", CheckoutSessionViewSet, basename="checkout-session")

urlpatterns = router.urls
