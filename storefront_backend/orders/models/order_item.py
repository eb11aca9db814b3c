# orders/models/order_item.py

import uuid
from decimal import Decimal

from django.db import models


class OrderItem(models.Model):
    """
    Order line snapshot.

    unit_cost / markup_amount feed commission margin calculation:
    - markup_amount = (unit_price - retail_price) when a markup price was charged, else 0
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="order_items",
    )

    external_id = models.BigIntegerField(null=True, blank=True)
    name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField()

    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    retail_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    unit_cost = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    markup_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    price_source = models.CharField(max_length=20, default="regular")

    line_total = models.DecimalField(max_digits=12, decimal_places=2)

    class Meta:
        ordering = ["name"]

    def save(self, *args, **kwargs):
        if self.line_total is None:
            self.line_total = (Decimal(self.unit_price) * int(self.quantity)).quantize(Decimal("0.01"))
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.name} x {self.quantity}"
