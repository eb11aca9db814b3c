from .membership import OrganizationMembership
from .organization import Location, Organization

__all__ = [
    "Organization",
    "Location",
    "OrganizationMembership",
]
