from .addresses import CustomerAddressViewSet
from .admin import LoginAuditViewSet, UserAdminViewSet
from .auth import LoginView, RegisterView
from .me import MeView

__all__ = [
    "RegisterView",
    "LoginView",
    "MeView",
    "CustomerAddressViewSet",
    "UserAdminViewSet",
    "LoginAuditViewSet",
]
