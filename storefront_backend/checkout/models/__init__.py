from .session import CheckoutSession

__all__ = [
    "CheckoutSession",
]
