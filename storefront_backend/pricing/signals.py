"""
PATH: pricing/signals.py

Invalidate cached price quotes whenever an input to resolution changes:
contract prices, product list prices, memberships.
"""

from __future__ import annotations

from django.db.models.signals import post_delete, post_save
from django.dispatch import receiver

from organizations.models import Location, Organization, OrganizationMembership
from pricing.models import ContractPrice
from pricing.services.cache import bump_generation
from products.models import Product


@receiver(post_save, sender=ContractPrice)
@receiver(post_delete, sender=ContractPrice)
@receiver(post_save, sender=Product)
@receiver(post_save, sender=OrganizationMembership)
@receiver(post_delete, sender=OrganizationMembership)
@receiver(post_save, sender=Organization)
@receiver(post_save, sender=Location)
def invalidate_price_cache(sender, **kwargs):
    bump_generation()
