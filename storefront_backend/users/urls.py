# users/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import (
    CustomerAddressViewSet,
    LoginAuditViewSet,
    LoginView,
    MeView,
    RegisterView,
    UserAdminViewSet,
)

app_name = "users"

router = DefaultRouter()
router.register(r"addresses", CustomerAddressViewSet, basename="address")
router.register(r"users", UserAdminViewSet, basename="user-admin")
router.register(r"login-audit", LoginAuditViewSet, basename="login-audit")

urlpatterns = [
    # ---------------- PUBLIC AUTH ----------------
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    # ---------------- AUTHENTICATED ----------------
    path("me/", MeView.as_view(), name="me"),
    path("", include(router.urls)),
]
