"""Cart exceptions."""

from modules.core.exceptions import NotFoundError


class CartNotFound(NotFoundError):
    code = "cart_not_found"
    default_detail = "Cart not found."


class CartItemNotFound(NotFoundError):
    code = "cart_item_not_found"
    default_detail = "Item not found in cart."
