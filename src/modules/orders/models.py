"""Order, OrderItem, and OrderStatusHistory models.

Rules implemented here:
- Order number auto-generated as a human-readable identifier
  (also sent to the payment gateway as the receipt).
- Items, shipping address, payment method and all prices are written once
  at creation; only status, payment and delivery fields change later.
- ``total_price`` is computed once at creation and never recomputed.
- User FK uses PROTECT to preserve financial history.
- OrderItem snapshots name, image and unit price at creation time.
- OrderItem subtotal is always ``quantity * unit_price`` (calculated on save).
- A paid order always carries ``paid_at`` and never stays in
  ``PENDING_PAYMENT`` (``enforce_payment_invariants``).
"""

from __future__ import annotations

import secrets
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    STOCK_HOLDING_STATES,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    PaymentMethod,
)
from shared.domain.events import DomainEventMixin

logger = structlog.get_logger(__name__)

MONEY = {"max_digits": 12, "decimal_places": 2}


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    ``order_number`` is a human-readable identifier (format:
    ``ORD-YYYYMMDD-XXXXXX``), generated by the service before the gateway
    call or on first save.  The UUIDv7 ``id`` is used for all internal
    references and API lookups.

    ``gateway_order_id`` is only set for gateway-routed orders; several
    NULLs never collide on the unique index.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )

    # Shipping address (immutable)
    shipping_full_name = models.CharField(max_length=150)
    shipping_address_line1 = models.CharField(max_length=255)
    shipping_address_line2 = models.CharField(max_length=255, blank=True, default="")
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100, default="India")
    shipping_phone_number = models.CharField(max_length=30)

    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)

    items_price = models.DecimalField(**MONEY, default=Decimal("0.00"))
    tax_price = models.DecimalField(**MONEY, default=Decimal("0.00"))
    shipping_price = models.DecimalField(**MONEY, default=Decimal("0.00"))
    total_price = models.DecimalField(**MONEY, default=Decimal("0.00"))

    order_status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PAYMENT,
    )
    is_paid = models.BooleanField(default=False)
    paid_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    # Payment result as reported by the gateway or an admin
    payment_result_id = models.CharField(max_length=100, null=True, blank=True)  # noqa: DJ01
    payment_result_status = models.CharField(max_length=50, null=True, blank=True)  # noqa: DJ01
    payment_result_update_time = models.CharField(  # noqa: DJ01
        max_length=64, null=True, blank=True
    )
    payment_result_email = models.CharField(max_length=254, null=True, blank=True)  # noqa: DJ01

    gateway_order_id = models.CharField(  # noqa: DJ01
        max_length=100,
        unique=True,
        null=True,
        blank=True,
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "-created_at"], name="orders_user_created_idx"),
            models.Index(
                fields=["order_status", "-created_at"],
                name="orders_status_created_idx",
            ),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.order_status in TERMINAL_STATES

    @property
    def holds_stock(self) -> bool:
        """``True`` while cancellation should return quantities to stock."""
        return self.order_status in STOCK_HOLDING_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.order_status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Payment helpers
    # ------------------------------------------------------------------

    def mark_paid(self, paid_at: Optional[datetime] = None) -> None:
        """Flag the order as paid; ``paid_at`` defaults to now."""
        self.is_paid = True
        self.paid_at = paid_at or timezone.now()

    def enforce_payment_invariants(self) -> None:
        """Paid orders carry ``paid_at`` and leave ``PENDING_PAYMENT``."""
        if not self.is_paid:
            return
        if self.paid_at is None:
            self.paid_at = timezone.now()
        if self.order_status == OrderStatus.PENDING_PAYMENT:
            self.order_status = OrderStatus.PROCESSING

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """Generate a human-readable order number: ``ORD-YYYYMMDD-XXXXXX``."""
        now = timezone.now()
        suffix = secrets.token_hex(3).upper()
        return f"ORD-{now:%Y%m%d}-{suffix}"

    @classmethod
    def next_order_number(cls) -> str:
        """Return an order number not yet used by any order."""
        for _ in range(ORDER_NUMBER_MAX_RETRIES):
            candidate = cls.generate_order_number()
            if not cls.objects.filter(order_number=candidate).exists():
                return candidate
        raise RuntimeError(
            f"Failed to generate unique order_number after "
            f"{ORDER_NUMBER_MAX_RETRIES} attempts"
        )

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            self.order_number = self.next_order_number()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.order_status})"


class OrderItem(BaseModel):
    """Line item linking an Order to a Product.

    ``unit_price``, ``product_name`` and ``product_image`` are **snapshots**
    of the catalog at the time of purchase.  ``subtotal`` is always
    ``quantity * unit_price``, recalculated on every save.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product = models.ForeignKey(
        "products.Product",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_name = models.CharField(max_length=120)
    product_image = models.CharField(max_length=500, null=True, blank=True)  # noqa: DJ01
    quantity = models.PositiveIntegerField(
        default=1,
        validators=[MinValueValidator(1)],
    )
    unit_price = models.DecimalField(**MONEY)
    subtotal = models.DecimalField(**MONEY, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def clean(self) -> None:
        super().clean()
        if self.quantity is not None and self.quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.subtotal = (self.unit_price * self.quantity).quantize(Decimal("0.01"))
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.subtotal})"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail for order status transitions.

    Audit records are immutable.  ``user`` is nullable: ``None`` means the
    change was performed by the system (e.g. a payment webhook).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status = models.CharField(max_length=20, choices=OrderStatus.choices)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
