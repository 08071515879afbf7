"""Catalog and inventory exceptions.

Raised by ``InventoryLedger`` and by the services that read the catalog
(cart, orders).  Messages are user-facing: they name the product and the
quantities involved so that the shopper can correct the request.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import ConflictError, NotFoundError


class ProductNotFound(NotFoundError):
    """The product does not exist or has been soft-deleted."""

    code = "product_not_found"


class ProductUnavailable(ConflictError):
    """The product exists but is not active."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "product_unavailable"


class InsufficientStock(ConflictError):
    """Available quantity is lower than the requested quantity."""

    code = "insufficient_stock"

    def __init__(self, product_name: str, available: int, requested: int) -> None:
        self.product_name = product_name
        self.available = available
        self.requested = requested
        super().__init__(
            f'Not enough stock for "{product_name}". Only {available} left, '
            f"but {requested} requested."
        )
