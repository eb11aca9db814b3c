"""
PATH: products/services/catalog_sync.py

CATALOG SYNC (commerce platform -> local Product mirror)

Rules:
- Upsert by external_id.
- Local policy (allow_markup) is never overwritten by sync.
- cost_price prefers the first variant's cost when the product has variants.
- Non-positive costs are treated as "unknown" (NULL).
- Products missing from a COMPLETE listing are deactivated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from commerce.bigcommerce import BigCommerceClient, get_client
from products.models import Product

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


def _money(v) -> Decimal | None:
    if v is None or v == "":
        return None
    try:
        return Decimal(str(v)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return None


@dataclass
class SyncResult:
    created: int = 0
    updated: int = 0
    deactivated: int = 0
    skipped: int = 0

    def as_dict(self) -> dict:
        return {
            "created": self.created,
            "updated": self.updated,
            "deactivated": self.deactivated,
            "skipped": self.skipped,
        }


def _cost_from_payload(item: dict) -> Decimal | None:
    cost = item.get("cost_price")
    variants = item.get("variants") or []
    if variants and variants[0].get("cost_price") is not None:
        cost = variants[0].get("cost_price")
    cost = _money(cost)
    if cost is None or cost <= 0:
        return None
    return cost


def _image_from_payload(item: dict) -> str:
    image = item.get("primary_image") or {}
    return (image.get("url_standard") or image.get("url_zoom") or "")[:500]


def product_fields_from_payload(item: dict) -> dict:
    retail = _money(item.get("price")) or Decimal("0.00")
    sale = _money(item.get("sale_price"))
    return {
        "sku": (item.get("sku") or "").strip(),
        "name": (item.get("name") or "").strip() or f"Product {item.get('id')}",
        "description": item.get("description") or "",
        "image_url": _image_from_payload(item),
        "retail_price": retail,
        "sale_price": sale if sale and sale > 0 else None,
        "cost_price": _cost_from_payload(item),
        "is_visible": bool(item.get("is_visible", True)),
    }


@transaction.atomic
def upsert_product(item: dict, *, now=None) -> tuple[Product, bool]:
    now = now or timezone.now()
    fields = product_fields_from_payload(item)

    product = Product.objects.select_for_update().filter(external_id=item["id"]).first()
    created = product is None
    if created:
        product = Product(external_id=item["id"])

    for name, value in fields.items():
        setattr(product, name, value)
    product.is_active = True
    product.last_synced_at = now
    product.save()
    return product, created


def sync_catalog(client: BigCommerceClient | None = None, *, deactivate_missing: bool = True) -> SyncResult:
    client = client or get_client()
    result = SyncResult()
    seen: set[int] = set()
    now = timezone.now()

    for item in client.iter_products():
        if not item.get("id"):
            result.skipped += 1
            continue
        _, created = upsert_product(item, now=now)
        seen.add(int(item["id"]))
        if created:
            result.created += 1
        else:
            result.updated += 1

    if deactivate_missing and seen:
        result.deactivated = (
            Product.objects.filter(is_active=True)
            .exclude(external_id__in=seen)
            .update(is_active=False, updated_at=now)
        )

    logger.info("Catalog sync finished", extra={"sync_result": result.as_dict()})
    return result
