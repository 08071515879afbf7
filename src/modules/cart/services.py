"""Cart service layer (Use Cases).

Stock is only *checked* here, never reserved: reservation happens at
order creation, under row locks, through ``InventoryLedger``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from django.db import transaction

from modules.cart.dtos import AddCartItemDTO, CartOutputDTO, UpdateCartItemDTO
from modules.cart.exceptions import CartItemNotFound, CartNotFound
from modules.cart.models import CartItem
from modules.products.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)

if TYPE_CHECKING:
    from modules.cart.repositories.interfaces import ICartRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class CartService:
    """Application service for cart use-cases.

    Receives repositories via constructor injection (DIP).
    """

    def __init__(
        self,
        cart_repository: ICartRepository,
        product_repository: IProductRepository,
    ) -> None:
        self._cart_repo = cart_repository
        self._product_repo = product_repository

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_cart(self, user_id: Any) -> CartOutputDTO:
        """Return the user's cart; an empty representation if none exists."""
        cart = self._cart_repo.get_for_user(user_id)
        if cart is None:
            return CartOutputDTO.empty(user_id)
        return CartOutputDTO.from_entity(cart)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_item(self, user_id: Any, dto: AddCartItemDTO) -> CartOutputDTO:
        """Add a product, or increase the quantity of an existing line.

        Name, image and unit price are snapshotted only on the first add.

        Raises:
            ProductNotFound: product missing or soft-deleted.
            ProductUnavailable: product is inactive.
            InsufficientStock: resulting line quantity exceeds stock.
        """
        log = logger.bind(user_id=user_id, product_id=str(dto.product_id))
        product = self._get_available_product(str(dto.product_id))

        cart = self._cart_repo.get_or_create_for_user(user_id)
        item = next(
            (line for line in cart.items.all() if line.product_id == product.id),
            None,
        )

        if item is None:
            self._check_stock(product, dto.quantity)
            item = CartItem(
                cart=cart,
                product=product,
                quantity=dto.quantity,
                unit_price=product.price,
                product_name=product.name,
                product_image=product.primary_image,
            )
        else:
            self._check_stock(product, item.quantity + dto.quantity)
            item.quantity += dto.quantity

        self._cart_repo.save_item(item)
        log.info("cart.item_added", quantity=item.quantity)
        return self.get_cart(user_id)

    @transaction.atomic
    def update_item_quantity(
        self, user_id: Any, item_id: str, dto: UpdateCartItemDTO
    ) -> CartOutputDTO:
        """Replace the quantity of a line.

        Raises:
            CartNotFound: the user has no cart.
            CartItemNotFound: the line is not in the user's cart.
            ProductNotFound / ProductUnavailable / InsufficientStock.
        """
        cart = self._cart_repo.get_for_update(user_id)
        if cart is None:
            raise CartNotFound()
        item = self._cart_repo.get_item(cart, item_id)
        if item is None:
            raise CartItemNotFound()

        product = self._get_available_product(str(item.product_id))
        self._check_stock(product, dto.quantity)

        item.quantity = dto.quantity
        self._cart_repo.save_item(item)
        logger.info(
            "cart.item_updated",
            user_id=user_id,
            item_id=str(item.id),
            quantity=dto.quantity,
        )
        return self.get_cart(user_id)

    @transaction.atomic
    def remove_item(self, user_id: Any, item_id: str) -> CartOutputDTO:
        """Raises ``CartNotFound`` or ``CartItemNotFound``."""
        cart = self._cart_repo.get_for_update(user_id)
        if cart is None:
            raise CartNotFound()
        item = self._cart_repo.get_item(cart, item_id)
        if item is None:
            raise CartItemNotFound()

        self._cart_repo.delete_item(item)
        logger.info("cart.item_removed", user_id=user_id, item_id=str(item_id))
        return self.get_cart(user_id)

    @transaction.atomic
    def clear_cart(self, user_id: Any) -> CartOutputDTO:
        """Remove every line. Clearing a missing cart is a no-op."""
        cart = self._cart_repo.get_for_update(user_id)
        if cart is not None:
            removed = self._cart_repo.clear(cart)
            logger.info("cart.cleared", user_id=user_id, removed=removed)
        return self.get_cart(user_id)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_available_product(self, product_id: str) -> Product:
        product = self._product_repo.get_by_id(product_id)
        if product is None:
            raise ProductNotFound(f"Product {product_id} not found.")
        if not product.is_active:
            raise ProductUnavailable(f'Product "{product.name}" is not available.')
        return product

    @staticmethod
    def _check_stock(product: Product, quantity: int) -> None:
        if product.stock_quantity < quantity:
            raise InsufficientStock(product.name, product.stock_quantity, quantity)
