from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import (
    CommissionViewSet,
    DistributorSalesRepViewSet,
    DistributorViewSet,
    SalesRepAssignmentViewSet,
)

app_name = "commissions"

router = SimpleRouter()
router.register(r"distributors", DistributorViewSet, basename="distributor")
router.register(r"distributor-reps", DistributorSalesRepViewSet, basename="distributor-rep")
router.register(r"assignments", SalesRepAssignmentViewSet, basename="assignment")
router.register(r"", CommissionViewSet, basename="commission")

urlpatterns = [
    path("", include(router.urls)),
]
