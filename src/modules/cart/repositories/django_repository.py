"""Django ORM implementation of the Cart repository."""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.core.exceptions import ValidationError

from modules.cart.models import Cart, CartItem
from modules.cart.repositories.interfaces import ICartRepository

logger = structlog.get_logger(__name__)


class CartDjangoRepository(ICartRepository):
    """Concrete Cart repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Cart]:
        try:
            return Cart.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_for_user(self, user_id: Any) -> Optional[Cart]:
        return Cart.objects.prefetch_related("items").filter(user_id=user_id).first()

    def get_for_update(self, user_id: Any) -> Optional[Cart]:
        """Lock the cart row; items are prefetched in a separate query."""
        return (
            Cart.objects.select_for_update()
            .prefetch_related("items")
            .filter(user_id=user_id)
            .first()
        )

    def get_or_create_for_user(self, user_id: Any) -> Cart:
        cart, created = Cart.objects.get_or_create(user_id=user_id)
        if created:
            logger.info("cart.created", cart_id=str(cart.id), user_id=user_id)
        return Cart.objects.select_for_update().get(pk=cart.pk)

    def save(self, entity: Cart) -> Cart:
        entity.save()
        return entity

    def get_item(self, cart: Cart, item_id: str) -> Optional[CartItem]:
        try:
            return CartItem.objects.filter(cart=cart, id=item_id).first()
        except (ValueError, ValidationError):
            return None

    def save_item(self, item: CartItem) -> CartItem:
        item.save()
        return item

    def delete_item(self, item: CartItem) -> None:
        item.delete()

    def clear(self, cart: Cart) -> int:
        deleted, _ = CartItem.objects.filter(cart=cart).delete()
        return deleted

    def delete(self, cart: Cart) -> None:
        cart_id = str(cart.id)
        cart.delete()
        logger.info("cart.deleted", cart_id=cart_id)
