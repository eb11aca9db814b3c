from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import OrderViewSet, ProfitReportView

app_name = "orders"

router = SimpleRouter()
router.register(r"", OrderViewSet, basename="order")

urlpatterns = [
    path("profit-report/", ProfitReportView.as_view(), name="profit-report"),
    path("", include(router.urls)),
]
