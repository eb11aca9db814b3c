from .contract_price import UNBOUNDED_QUANTITY, ContractPrice

__all__ = [
    "ContractPrice",
    "UNBOUNDED_QUANTITY",
]
