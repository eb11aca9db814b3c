"""
PATH: pricing/services/contracts.py

CONTRACT PRICE MANAGEMENT

Rules:
- Only callers with pricing.below_cost may set allow_below_cost=True
- Overlapping tiers raise PricingConflictError (HTTP 409 at the API)
- Remaining model rules surface as django ValidationError (HTTP 400)
"""

from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from permissions.roles import CAP_PRICING_BELOW_COST, user_has_capability
from pricing.models import ContractPrice
from pricing.services.exceptions import PricingConflictError, PricingPermissionError

logger = logging.getLogger(__name__)

WRITABLE_FIELDS = (
    "pricing_type",
    "user",
    "organization",
    "location",
    "product",
    "contract_price",
    "markup_price",
    "min_quantity",
    "max_quantity",
    "effective_date",
    "expiry_date",
    "allow_below_cost",
    "override_reason",
    "notes",
)


def _apply(instance: ContractPrice, data: dict) -> ContractPrice:
    for field in WRITABLE_FIELDS:
        if field in data:
            setattr(instance, field, data[field])

    # Switching pricing_type clears the entity slots that no longer apply.
    keep = instance.entity_field
    for field in ContractPrice.ENTITY_FIELD.values():
        if field != keep and field not in data:
            setattr(instance, field, None)
    return instance


def _check_and_save(instance: ContractPrice, actor) -> ContractPrice:
    if instance.allow_below_cost and not user_has_capability(actor, CAP_PRICING_BELOW_COST):
        raise PricingPermissionError("Only admins can set prices below cost.")

    if instance.overlapping_tiers().exists():
        raise PricingConflictError(
            "Pricing conflict: quantity range overlaps an existing tier for this product and entity."
        )

    instance.save()
    return instance


@transaction.atomic
def create_contract_price(data: dict, *, actor) -> ContractPrice:
    instance = _apply(ContractPrice(created_by=actor), data)
    instance = _check_and_save(instance, actor)
    logger.info(
        "Contract price created",
        extra={
            "contract_price_id": str(instance.pk),
            "pricing_type": instance.pricing_type,
            "product_id": str(instance.product_id),
            "actor_id": str(getattr(actor, "pk", "")),
            "below_cost": instance.allow_below_cost,
        },
    )
    return instance


@transaction.atomic
def update_contract_price(instance: ContractPrice, data: dict, *, actor) -> ContractPrice:
    instance = _apply(instance, data)
    instance = _check_and_save(instance, actor)
    logger.info(
        "Contract price updated",
        extra={"contract_price_id": str(instance.pk), "actor_id": str(getattr(actor, "pk", ""))},
    )
    return instance


@transaction.atomic
def delete_contract_price(instance: ContractPrice, *, actor) -> None:
    pk = instance.pk
    instance.delete()
    logger.info(
        "Contract price deleted",
        extra={"contract_price_id": str(pk), "actor_id": str(getattr(actor, "pk", ""))},
    )


def validation_payload(exc: ValidationError) -> dict:
    if hasattr(exc, "error_dict"):
        return exc.message_dict
    return {"non_field_errors": exc.messages}
