# products/models/product.py

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models


class Product(models.Model):
    """
    Local mirror of a commerce-platform product.

    CATALOG MODEL (IMPORTANT):
    - The commerce platform owns the catalog; external_id is its product id.
    - retail_price / sale_price / cost_price are refreshed by catalog sync.
    - cost_price is confidential: only exposed to users with costs.view.
    - allow_markup is local policy: only these products may carry a
      contract markup_price above retail.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    external_id = models.BigIntegerField(unique=True, db_index=True)
    sku = models.CharField(max_length=128, blank=True, db_index=True)
    name = models.CharField(max_length=255, db_index=True)
    description = models.TextField(blank=True)
    brand = models.CharField(max_length=120, blank=True)
    image_url = models.URLField(max_length=500, blank=True)

    retail_price = models.DecimalField(max_digits=10, decimal_places=2)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    cost_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    allow_markup = models.BooleanField(default=False)

    is_visible = models.BooleanField(default=True)
    is_active = models.BooleanField(default=True)

    last_synced_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active", "is_visible"], name="idx_product_storefront"),
        ]

    def __str__(self):
        return f"{self.name} (#{self.external_id})"

    def clean(self):
        if self.retail_price is None or Decimal(self.retail_price) < 0:
            raise ValidationError({"retail_price": "Retail price must be non-negative"})
        if self.sale_price is not None and Decimal(self.sale_price) < 0:
            raise ValidationError({"sale_price": "Sale price must be non-negative"})
        if self.cost_price is not None and Decimal(self.cost_price) < 0:
            raise ValidationError({"cost_price": "Cost price must be non-negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        super().save(*args, **kwargs)

    @property
    def regular_price(self) -> Decimal:
        """
        List price a customer pays without a contract:
        sale_price when it is set, positive and below retail, else retail_price.
        """
        retail = Decimal(self.retail_price)
        if self.sale_price is not None and Decimal("0") < Decimal(self.sale_price) < retail:
            return Decimal(self.sale_price)
        return retail
