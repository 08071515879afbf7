"""Order domain constants.

Status choices, payment methods and the order state machine.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING_PAYMENT = "PENDING_PAYMENT", "Pending payment"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"
    FAILED = "FAILED", "Failed"


class PaymentMethod(models.TextChoices):
    COD = "COD", "Cash on delivery"
    BANK_TRANSFER = "BANK_TRANSFER", "Bank transfer"
    ONLINE = "ONLINE", "Online (payment gateway)"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING_PAYMENT: {
        OrderStatus.PROCESSING,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.PROCESSING: {
        OrderStatus.SHIPPED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.SHIPPED: {
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
        OrderStatus.FAILED,
    },
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.FAILED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.FAILED,
}

# Cancelling from one of these returns the order's quantities to stock.
STOCK_HOLDING_STATES: set[str] = {
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PROCESSING,
}

GATEWAY_PAYMENT_METHODS: set[str] = {PaymentMethod.ONLINE}

SUCCESSFUL_PAYMENT_STATUSES: set[str] = {"succeeded", "completed", "captured"}

ORDER_NUMBER_MAX_RETRIES = 5
