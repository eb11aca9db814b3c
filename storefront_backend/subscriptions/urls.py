"""
PATH: subscriptions/urls.py
"""

from rest_framework.routers import SimpleRouter

from subscriptions.views import RecurringOrderViewSet

app_name = "subscriptions"

router = SimpleRouter()
router.register(r"", RecurringOrderViewSet, basename="recurring-order")

urlpatterns = router.urls
