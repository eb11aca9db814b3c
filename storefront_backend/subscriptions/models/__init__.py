from .history import RecurringOrderHistory
from .recurring_order import RecurringOrder

__all__ = [
    "RecurringOrder",
    "RecurringOrderHistory",
]
