from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import ContractPriceViewSet, EffectivePriceView, QuoteView

app_name = "pricing"

router = SimpleRouter()
router.register(r"contract-prices", ContractPriceViewSet, basename="contract-price")

urlpatterns = [
    path("effective/", EffectivePriceView.as_view(), name="effective-price"),
    path("quote/", QuoteView.as_view(), name="quote"),
    path("", include(router.urls)),
]
