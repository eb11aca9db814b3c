from .address import CustomerAddress
from .login_audit import LoginAudit
from .user import User, UserManager

__all__ = [
    "User",
    "UserManager",
    "LoginAudit",
    "CustomerAddress",
]
