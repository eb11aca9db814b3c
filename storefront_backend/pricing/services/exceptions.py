# pricing/services/exceptions.py
from __future__ import annotations


class PricingError(Exception):
    """Base error for contract pricing operations."""


class InvalidQuantityError(PricingError):
    pass


class PricingConflictError(PricingError):
    """Quantity tiers overlap for the same product + entity + pricing type."""


class PricingPermissionError(PricingError):
    """Caller may not perform this pricing change (e.g. below-cost override)."""


class PricingScopeError(PricingError):
    """Requested organization / location is outside the caller's memberships."""
