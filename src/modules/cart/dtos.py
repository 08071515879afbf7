"""Cart DTOs for the Service Layer.

Immutable Pydantic v2 models exchanged between the cart views and
``CartService``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, field_validator

if TYPE_CHECKING:
    from modules.cart.models import Cart


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class AddCartItemDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int = 1

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class UpdateCartItemDTO(BaseModel):
    """Quantity replacement for an existing line; use removal for zero."""

    model_config = ConfigDict(frozen=True)

    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1. To remove an item, delete it.")
        return v


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class CartItemOutputDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: UUID
    product_id: UUID
    product_name: str
    product_image: Optional[str]
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class CartOutputDTO(BaseModel):
    """Cart representation. ``id`` is ``None`` when the user has no cart yet."""

    model_config = ConfigDict(frozen=True)

    id: Optional[UUID]
    user_id: Any
    items: List[CartItemOutputDTO]
    total_price: Decimal

    @classmethod
    def from_entity(cls, cart: Cart) -> CartOutputDTO:
        """Assumes ``items`` is prefetched."""
        items = [
            CartItemOutputDTO(
                id=item.id,
                product_id=item.product_id,
                product_name=item.product_name,
                product_image=item.product_image,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=item.subtotal,
            )
            for item in cart.items.all()
        ]
        return cls(
            id=cart.id,
            user_id=cart.user_id,
            items=items,
            total_price=sum((i.subtotal for i in items), Decimal("0.00")),
        )

    @classmethod
    def empty(cls, user_id: Any) -> CartOutputDTO:
        return cls(id=None, user_id=user_id, items=[], total_price=Decimal("0.00"))
