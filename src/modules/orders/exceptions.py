"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.
``standard_exception_handler`` translates them into HTTP responses.
Catalog errors (``ProductNotFound``, ``ProductUnavailable``,
``InsufficientStock``) live in ``modules.products.exceptions``.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_detail = "Order not found."


class EmptyCart(ValidationError):
    code = "empty_cart"
    default_detail = "Your cart is empty."


class InvalidAmount(ValidationError):
    """Gateway-routed orders need a strictly positive total."""

    code = "invalid_amount"
    default_detail = "Order total must be greater than zero for online payment."


class InvalidOrderStatus(ConflictError):
    """An invalid status transition was attempted."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_status_transition"


class OrderAccessDenied(AuthorizationError):
    code = "order_access_denied"
    default_detail = "You are not allowed to view this order."
