"""Product repository interface.

Extends ``IRepository[Product]`` with the row-locked look-up and the
stock movements required by ``InventoryLedger``.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_for_update(self, id: str) -> Optional["Product"]:
        """Retrieve a live product with a row-level lock (SELECT FOR UPDATE).

        Returns ``None`` if the product does not exist or is soft-deleted.
        """

    @abstractmethod
    def decrement_stock(self, id: str, quantity: int) -> bool:
        """Conditionally decrement stock.

        Returns ``False`` when fewer than ``quantity`` units are available,
        in which case nothing is written.
        """

    @abstractmethod
    def increment_stock(self, id: str, quantity: int) -> None:
        """Return ``quantity`` units to stock."""
