"""Inventory ledger over ``Product.stock_quantity``.

Every method must run inside the caller's ``transaction.atomic`` block;
Django refuses ``select_for_update`` outside one.  Callers that touch
several products lock them in ascending id order.
"""

from __future__ import annotations

from typing import Optional

import structlog

from modules.products.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)
from modules.products.models import Product
from modules.products.repositories.django_repository import ProductDjangoRepository
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class InventoryLedger:
    """Reserve and restore product stock."""

    def __init__(self, product_repository: Optional[IProductRepository] = None) -> None:
        self._product_repo = product_repository or ProductDjangoRepository()

    def lock(self, product_id: str) -> Optional[Product]:
        """Row-locked live product, or ``None``."""
        return self._product_repo.get_for_update(str(product_id))

    def lock_available(self, product_id: str, quantity: int) -> Product:
        """Lock a product and check it can supply ``quantity`` units.

        Raises:
            ProductNotFound: product missing or soft-deleted.
            ProductUnavailable: product is inactive.
            InsufficientStock: fewer than ``quantity`` units in stock.
        """
        product = self.lock(product_id)
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found.")
        if not product.is_active:
            raise ProductUnavailable(f'Product "{product.name}" is not available.')
        if product.stock_quantity < quantity:
            raise InsufficientStock(product.name, product.stock_quantity, quantity)
        return product

    def reserve(self, product_id: str, quantity: int) -> Product:
        """Decrement stock by ``quantity``.

        Raises the same errors as ``lock_available``.  The decrement itself
        is conditional, so a concurrent reservation that slipped past the
        lock still cannot drive stock negative.
        """
        product = self.lock_available(product_id, quantity)
        if not self._product_repo.decrement_stock(str(product.id), quantity):
            product.refresh_from_db(fields=["stock_quantity"])
            raise InsufficientStock(product.name, product.stock_quantity, quantity)

        product.stock_quantity -= quantity
        logger.info(
            "inventory.reserved",
            product_id=str(product.id),
            quantity=quantity,
            remaining=product.stock_quantity,
        )
        return product

    def restore(self, product_id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock.

        Soft-deleted products are restored too; the order line still
        references them.
        """
        self._product_repo.increment_stock(str(product_id), quantity)
        logger.info("inventory.restored", product_id=str(product_id), quantity=quantity)
