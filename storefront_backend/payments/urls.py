"""
PATH: payments/urls.py
"""

from rest_framework.routers import SimpleRouter

from payments.views import PaymentMethodViewSet

app_name = "payments"

router = SimpleRouter()
router.register(r"", PaymentMethodViewSet, basename="payment-method")

urlpatterns = router.urls
