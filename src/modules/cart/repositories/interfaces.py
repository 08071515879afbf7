"""Cart repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.cart.models import Cart, CartItem


class ICartRepository(IRepository["Cart"]):
    """Repository contract for the Cart aggregate (Cart + CartItems)."""

    @abstractmethod
    def get_for_user(self, user_id: Any) -> Optional["Cart"]:
        """Retrieve the user's cart with its items, ``None`` if absent."""

    @abstractmethod
    def get_for_update(self, user_id: Any) -> Optional["Cart"]:
        """Retrieve the user's cart with a row-level lock."""

    @abstractmethod
    def get_or_create_for_user(self, user_id: Any) -> "Cart":
        """Retrieve (locked) or lazily create the user's cart."""

    @abstractmethod
    def get_item(self, cart: "Cart", item_id: str) -> Optional["CartItem"]:
        """Retrieve a line of ``cart`` by id, ``None`` if absent."""

    @abstractmethod
    def save_item(self, item: "CartItem") -> "CartItem":
        """Persist a cart line."""

    @abstractmethod
    def delete_item(self, item: "CartItem") -> None:
        """Remove a single cart line."""

    @abstractmethod
    def clear(self, cart: "Cart") -> int:
        """Remove every line of ``cart``; returns the number removed."""

    @abstractmethod
    def delete(self, cart: "Cart") -> None:
        """Delete the cart and its lines."""
