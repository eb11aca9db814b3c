from .assignment import OrganizationSalesRep
from .commission import Commission
from .distributor import Distributor, DistributorSalesRep

__all__ = [
    "Commission",
    "Distributor",
    "DistributorSalesRep",
    "OrganizationSalesRep",
]
