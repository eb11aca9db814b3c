from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import LocationViewSet, MembershipViewSet, OrganizationViewSet

app_name = "organizations"

router = SimpleRouter()
router.register(r"locations", LocationViewSet, basename="location")
router.register(r"memberships", MembershipViewSet, basename="membership")
router.register(r"", OrganizationViewSet, basename="organization")

urlpatterns = [
    path("", include(router.urls)),
]
