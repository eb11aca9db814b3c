# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import SAFE_METHODS, BasePermission


# =========================================================
# ROLE CONSTANTS (ACCOUNT ROLES)
# =========================================================
# Account-level roles. Organization-level roles (admin/manager/member/viewer)
# live on OrganizationMembership and are checked by the organizations services.
ROLE_ADMIN = "admin"
ROLE_SALES_REP = "sales_rep"
ROLE_DISTRIBUTOR = "distributor"
ROLE_CUSTOMER = "customer"

ROLE_CHOICES = (
    (ROLE_ADMIN, "Admin"),
    (ROLE_SALES_REP, "Sales Rep"),
    (ROLE_DISTRIBUTOR, "Distributor"),
    (ROLE_CUSTOMER, "Customer"),
)

ALL_ROLES = {r for r, _ in ROLE_CHOICES}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views should protect capabilities, not raw roles.
CAP_CHECKOUT = "checkout.use"

CAP_PRICING_VIEW = "pricing.view"          # list contract prices for any entity
CAP_PRICING_MANAGE = "pricing.manage"      # create/update/delete contract prices
CAP_PRICING_BELOW_COST = "pricing.below_cost"

CAP_COSTS_VIEW = "costs.view"              # product cost_price is visible
CAP_CATALOG_SYNC = "catalog.sync"

CAP_ORGS_MANAGE = "orgs.manage"
CAP_USERS_APPROVE = "users.approve"
CAP_AUDIT_VIEW = "audit.view"

CAP_ORDERS_VIEW_ALL = "orders.view_all"
CAP_ORDERS_MANAGE = "orders.manage"        # status transitions, shipment tracking

CAP_COMMISSIONS_VIEW = "commissions.view"  # own commissions
CAP_COMMISSIONS_MANAGE = "commissions.manage"

CAP_RECURRING_MANAGE = "recurring.manage"  # any user's recurring orders

ALL_CAPABILITIES = {
    CAP_CHECKOUT,
    CAP_PRICING_VIEW,
    CAP_PRICING_MANAGE,
    CAP_PRICING_BELOW_COST,
    CAP_COSTS_VIEW,
    CAP_CATALOG_SYNC,
    CAP_ORGS_MANAGE,
    CAP_USERS_APPROVE,
    CAP_AUDIT_VIEW,
    CAP_ORDERS_VIEW_ALL,
    CAP_ORDERS_MANAGE,
    CAP_COMMISSIONS_VIEW,
    CAP_COMMISSIONS_MANAGE,
    CAP_RECURRING_MANAGE,
}


# =========================================================
# ROLE → CAPABILITY MAP (DEFAULT)
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_SALES_REP: {
        CAP_CHECKOUT,
        CAP_PRICING_VIEW,
        CAP_COSTS_VIEW,
        CAP_COMMISSIONS_VIEW,
    },
    ROLE_DISTRIBUTOR: {
        CAP_CHECKOUT,
        CAP_PRICING_VIEW,
        CAP_COMMISSIONS_VIEW,
    },
    ROLE_CUSTOMER: {
        CAP_CHECKOUT,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN
    return getattr(user, "role", None)


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and get_user_role(user) == ROLE_ADMIN)


def effective_capabilities_for(user) -> set[str]:
    if not user or not user.is_authenticated:
        return set()
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    return capability in effective_capabilities_for(user)


# =========================================================
# Base Role Permission (Internal Use)
# =========================================================
class BaseRolePermission(BasePermission):
    """
    Base permission for role-based access control.

    Subclasses must define:
    - allowed_roles (set)
    """

    allowed_roles: set[str] = set()

    def has_permission(self, request, view):
        user = request.user

        if not user or not user.is_authenticated:
            return False

        user_role = get_user_role(user)
        if not user_role:
            return False

        return user_role in self.allowed_roles


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_PRICING_MANAGE
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default when a view forgets to declare it
            return False

        return required in effective_capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a set.

    Usage:
        view.required_any_capabilities = {CAP_ORDERS_VIEW_ALL, CAP_ORDERS_MANAGE}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))


class ReadOnlyOrCapability(BasePermission):
    """
    Safe methods for any authenticated user, writes need view.required_capability.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        if request.method in SAFE_METHODS:
            return True
        required = getattr(view, "required_capability", None)
        return bool(required) and required in effective_capabilities_for(user)


# =========================================================
# Role Permissions
# =========================================================
class IsAdmin(BaseRolePermission):
    allowed_roles = {ROLE_ADMIN}


class IsSalesRep(BaseRolePermission):
    allowed_roles = {ROLE_SALES_REP}


class IsSalesRepOrAdmin(BaseRolePermission):
    allowed_roles = {ROLE_SALES_REP, ROLE_ADMIN}


class IsApprovedUser(BasePermission):
    """
    Account must be approved (admins always pass).
    """

    message = "Your account is pending approval."

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return bool(getattr(user, "is_pricing_eligible", False))
