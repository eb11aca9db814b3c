# commerce/bigcommerce.py
"""
PATH: commerce/bigcommerce.py

BIGCOMMERCE REST v3 CLIENT

Covers only what the storefront needs:
- carts (create / get / delete)
- checkout (billing address, consignments, order creation)
- catalog products (paginated listing for sync)

Rules:
- Credentials come from settings.COMMERCE["BIGCOMMERCE"]
- Every failure raises CommerceAPIError with the HTTP status in the message
- Responses must be JSON objects; anything else is an error
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterator

import httpx
from django.conf import settings

from commerce.exceptions import CommerceAPIError, CommerceConfigError

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.bigcommerce.com"


def _bc_cfg() -> dict:
    commerce = getattr(settings, "COMMERCE", {}) or {}
    cfg = commerce.get("BIGCOMMERCE") if isinstance(commerce, dict) else None
    return cfg if isinstance(cfg, dict) else {}


def _safe_preview(text: str, limit: int = 500) -> str:
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    return text[:limit] + " ...(truncated)"


def _parse_json(raw: str) -> dict[str, Any] | None:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def _error_message(parsed: dict | None, raw: str) -> str:
    if parsed:
        msg = parsed.get("title") or parsed.get("detail") or parsed.get("message")
        if msg:
            return str(msg)
        errors = parsed.get("errors")
        if errors:
            return _safe_preview(json.dumps(errors))
    return _safe_preview(raw) or "request rejected"


class BigCommerceClient:
    """
    Thin httpx client. A connection is opened per request; instances hold only credentials.
    """

    def __init__(
        self,
        *,
        store_hash: str | None = None,
        access_token: str | None = None,
        channel_id: int | None = None,
        api_base: str | None = None,
        timeout: int | None = None,
    ):
        cfg = _bc_cfg()
        self.store_hash = (store_hash or cfg.get("STORE_HASH") or "").strip()
        self.access_token = (access_token or cfg.get("ACCESS_TOKEN") or "").strip()
        self.channel_id = int(channel_id or cfg.get("CHANNEL_ID") or 1)
        self.api_base = (api_base or cfg.get("API_BASE") or DEFAULT_API_BASE).rstrip("/")
        self.timeout = int(timeout or cfg.get("TIMEOUT") or 20)

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------
    @property
    def base_url(self) -> str:
        return f"{self.api_base}/stores/{self.store_hash}/v3"

    def _ensure_configured(self) -> None:
        if not self.store_hash or not self.access_token:
            raise CommerceConfigError(
                "BigCommerce is not configured. Expected "
                "settings.COMMERCE['BIGCOMMERCE']['STORE_HASH'] and ['ACCESS_TOKEN']."
            )

    def _http(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={
                "X-Auth-Token": self.access_token,
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        query: dict | None = None,
    ) -> dict[str, Any]:
        self._ensure_configured()

        content = None
        if body is not None:
            content = json.dumps(body, ensure_ascii=False, default=str).encode("utf-8")

        try:
            with self._http() as client:
                response = client.request(method, path, params=query, content=content)
        except httpx.TimeoutException as e:
            raise CommerceAPIError("BigCommerce request timeout") from e
        except httpx.RequestError as e:
            raise CommerceAPIError(f"BigCommerce network error: {e}") from e

        raw = response.text
        if response.is_error:
            parsed = _parse_json(raw)
            message = _error_message(parsed, raw)
            logger.warning(
                "BigCommerce request rejected",
                extra={"method": method, "path": path, "status": response.status_code},
            )
            raise CommerceAPIError(
                f"BigCommerce HTTP {response.status_code}: {message}",
                status=response.status_code,
                payload=parsed or {},
            )

        if response.status_code == 204:
            return {}

        parsed = _parse_json(raw)
        if parsed is None:
            raise CommerceAPIError(
                f"BigCommerce returned non-JSON ({response.status_code}): {_safe_preview(raw, 200)}",
                status=response.status_code,
            )
        return parsed

    # ------------------------------------------------------------------
    # carts
    # ------------------------------------------------------------------
    def create_cart(self, line_items: list[dict]) -> dict:
        """
        line_items: [{"product_id": int, "quantity": int, "list_price"?: Decimal|str}]
        Returns the cart "data" object (id, redirect_urls, line_items, ...).
        """
        if not line_items:
            raise CommerceAPIError("Cannot create an empty cart")

        parsed = self._request(
            "POST",
            "/carts",
            body={"line_items": line_items, "channel_id": self.channel_id},
            query={"include": "redirect_urls"},
        )
        data = parsed.get("data") or {}
        if not data.get("id"):
            raise CommerceAPIError("BigCommerce cart response is missing an id")
        return data

    def get_cart(self, cart_id: str) -> dict:
        parsed = self._request("GET", f"/carts/{cart_id}")
        return parsed.get("data") or {}

    def delete_cart(self, cart_id: str) -> None:
        self._request("DELETE", f"/carts/{cart_id}")

    # ------------------------------------------------------------------
    # checkout
    # ------------------------------------------------------------------
    def add_billing_address(self, checkout_id: str, address: dict) -> dict:
        parsed = self._request("POST", f"/checkouts/{checkout_id}/billing-address", body=address)
        return parsed.get("data") or {}

    def add_consignment(self, checkout_id: str, address: dict, line_items: list[dict]) -> dict:
        parsed = self._request(
            "POST",
            f"/checkouts/{checkout_id}/consignments",
            body=[{"address": address, "line_items": line_items}],
            query={"include": "consignments.available_shipping_options"},
        )
        return parsed.get("data") or {}

    def create_checkout(self, cart_id: str, billing_address: dict, shipping_address: dict) -> dict:
        """
        BigCommerce checkouts share the cart id. We attach billing + one consignment
        holding every physical item and return {"id", "checkout"}.
        """
        cart = self.get_cart(cart_id)
        physical = (cart.get("line_items") or {}).get("physical_items") or []
        if not physical:
            raise CommerceAPIError("Cart has no physical items")

        line_items = [{"item_id": item["id"], "quantity": item["quantity"]} for item in physical]

        self.add_billing_address(cart_id, billing_address)
        checkout = self.add_consignment(cart_id, shipping_address, line_items)
        return {"id": cart_id, "checkout": checkout}

    def create_order(self, checkout_id: str) -> dict:
        parsed = self._request("POST", f"/checkouts/{checkout_id}/orders", body={})
        data = parsed.get("data") or {}
        if not data.get("id"):
            raise CommerceAPIError("BigCommerce order response is missing an id")
        return data

    # ------------------------------------------------------------------
    # catalog
    # ------------------------------------------------------------------
    def list_products(self, *, page: int = 1, limit: int = 250) -> tuple[list[dict], dict]:
        parsed = self._request(
            "GET",
            "/catalog/products",
            query={
                "page": page,
                "limit": limit,
                "include": "primary_image,variants",
            },
        )
        pagination = ((parsed.get("meta") or {}).get("pagination")) or {}
        return parsed.get("data") or [], pagination

    def iter_products(self, *, limit: int = 250) -> Iterator[dict]:
        page = 1
        while True:
            items, pagination = self.list_products(page=page, limit=limit)
            yield from items
            total_pages = int(pagination.get("total_pages") or 1)
            if page >= total_pages or not items:
                return
            page += 1


def get_client() -> BigCommerceClient:
    return BigCommerceClient()
