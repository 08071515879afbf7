"""Catalog product as seen by the ordering core.

The catalog itself (CRUD, search, image upload) lives outside this
service; the core only reads price, name, primary image, availability and
stock, and moves ``stock_quantity`` through ``InventoryLedger``.

Rules enforced at the database level:
- Price cannot be negative.
- Stock quantity cannot be negative (``PositiveIntegerField`` + check).
"""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import SoftDeleteModel


class Product(SoftDeleteModel):
    """Sellable product.

    ``images`` is a list of opaque URLs produced by the upload object store;
    the first entry is the one copied onto cart and order lines.
    """

    name = models.CharField(max_length=120)
    description = models.TextField(blank=True, default="")
    category = models.CharField(max_length=80, blank=True, default="")
    images = models.JSONField(default=list, blank=True)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    stock_quantity = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "products"
        ordering = ["name"]
        indexes = [
            models.Index(fields=["is_active"], name="products_active_idx"),
            models.Index(fields=["category", "price"], name="products_cat_price_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(price__gte=0),
                name="products_price_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(stock_quantity__gte=0),
                name="products_stock_non_negative",
            ),
        ]

    @property
    def primary_image(self) -> Optional[str]:
        """First image URL, or ``None`` when the product has no images."""
        return self.images[0] if self.images else None

    def __str__(self) -> str:
        return f"{self.name} ({self.stock_quantity} in stock)"
