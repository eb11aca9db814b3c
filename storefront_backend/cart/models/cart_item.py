# cart/models/cart_item.py

"""
CART ITEM MODEL

Rules:
- One line per product per cart (DB constraint).
- Quantity must be > 0.
- unit_price is a server-side snapshot of the resolved contract price;
  it is refreshed whenever the line or the cart context changes.
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from .cart import Cart


class CartItem(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    cart = models.ForeignKey(
        Cart,
        on_delete=models.CASCADE,
        related_name="items",
    )

    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="cart_items",
    )

    quantity = models.PositiveIntegerField(help_text="Must be greater than zero")

    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    regular_price = models.DecimalField(max_digits=10, decimal_places=2)
    price_source = models.CharField(max_length=20, default="regular")
    contract_price_id = models.UUIDField(null=True, blank=True)
    is_markup = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["cart", "product"],
                name="unique_product_per_cart",
            )
        ]

    def clean(self):
        if self.quantity is None or int(self.quantity) <= 0:
            raise ValidationError({"quantity": "Quantity must be greater than zero"})
        if self.unit_price is None or self.unit_price < 0:
            raise ValidationError({"unit_price": "Unit price must be non-negative"})

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)

    def apply_quote(self, quote) -> None:
        self.unit_price = quote.price
        self.regular_price = quote.regular_price
        self.price_source = quote.source
        self.contract_price_id = quote.contract_price_id
        self.is_markup = quote.is_markup

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity or 0))

    def __str__(self):
        return f"{getattr(self.product, 'name', 'Product')} x {self.quantity}"
