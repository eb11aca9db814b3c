"""
PATH: pricing/services/cache.py

Short-TTL cache for resolved prices.

Keys embed a "pricing generation" number. Any contract price or product price
change bumps the generation, so stale quotes stop being read immediately and
expire on their own within PRICING_CACHE_TTL.

The cache is an optimisation only: when the backend is unreachable, reads
miss and writes are dropped (logged), and resolution runs uncached.
"""

from __future__ import annotations

import logging

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)

GENERATION_KEY = "pricing:generation"


def cache_ttl() -> int:
    return int(getattr(settings, "PRICING_CACHE_TTL", 120))


def current_generation() -> int:
    value = cache.get(GENERATION_KEY)
    if value is None:
        cache.add(GENERATION_KEY, 1, timeout=None)
        value = cache.get(GENERATION_KEY, 1)
    return int(value)


def bump_generation() -> int:
    try:
        return cache.incr(GENERATION_KEY)
    except ValueError:
        cache.set(GENERATION_KEY, 2, timeout=None)
        return 2


def quote_key(*, user_id, product_id, quantity: int, location_id=None, organization_id=None) -> str:
    return ":".join(
        [
            "pricing",
            f"g{current_generation()}",
            str(user_id),
            str(product_id),
            str(quantity),
            str(location_id or "-"),
            str(organization_id or "-"),
        ]
    )


def read_quote(**key_parts):
    """
    Returns (key, cached_quote). key is None when the backend failed, which
    also tells the caller not to write back.
    """
    try:
        key = quote_key(**key_parts)
        return key, cache.get(key)
    except Exception:
        logger.warning("Price cache read failed; resolving uncached", exc_info=True)
        return None, None


def store_quote(key: str, quote) -> None:
    try:
        cache.set(key, quote, timeout=cache_ttl())
    except Exception:
        logger.warning("Price cache write failed", exc_info=True, extra={"cache_key": key})
