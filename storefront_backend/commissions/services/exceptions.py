# commissions/services/exceptions.py


class CommissionError(Exception):
    """Base error for commission operations."""


class NotASalesRepError(CommissionError):
    pass


class CommissionStateError(CommissionError):
    """Illegal status change (e.g. paying a pending commission)."""
