# commerce/exceptions.py

from __future__ import annotations


class CommerceError(Exception):
    """Base error for commerce platform calls."""


class CommerceConfigError(CommerceError):
    """Credentials / store hash missing."""


class CommerceAPIError(CommerceError):
    """
    Non-2xx or unreadable response.

    The HTTP status is part of the message ("BigCommerce HTTP 503: ...") so
    message-based retry classification sees it.
    """

    def __init__(self, message: str, *, status: int | None = None, payload: dict | None = None):
        super().__init__(message)
        self.status = status
        self.payload = payload or {}
