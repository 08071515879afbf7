"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``ShippingAddressDTO``: delivery address captured on the order.
- ``CreateOrderDTO``: input for checkout (cart → order).
- ``PaymentResultPatchDTO``: partial payment result reported by an admin.
- ``TransitionOrderDTO``: input for the admin status endpoint.
- ``GatewayPaymentParams``: what the client needs to open the gateway checkout.
- ``CreatedOrder``: output of order creation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import OrderStatus, PaymentMethod

TWO_PLACES = Decimal("0.01")


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class ShippingAddressDTO(BaseModel):
    """Every field is required except ``address_line2``."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    full_name: str = Field(min_length=1)
    address_line1: str = Field(min_length=1)
    address_line2: str = ""
    city: str = Field(min_length=1)
    state: str = Field(min_length=1)
    postal_code: str = Field(min_length=1)
    country: str = Field(default="India", min_length=1)
    phone_number: str = Field(min_length=1)


class CreateOrderDTO(BaseModel):
    """Immutable DTO for checkout requests.

    Items are not part of the request: they are read from the user's cart.
    """

    model_config = ConfigDict(frozen=True)

    user_id: Any
    shipping_address: ShippingAddressDTO
    payment_method: PaymentMethod
    tax_price: Decimal = Field(default=Decimal("0.00"), ge=0)
    shipping_price: Decimal = Field(default=Decimal("0.00"), ge=0)

    @field_validator("tax_price", "shipping_price")
    @classmethod
    def quantize_money(cls, v: Decimal) -> Decimal:
        return v.quantize(TWO_PLACES)


class PaymentResultPatchDTO(BaseModel):
    """Fields left as ``None`` keep their stored value."""

    model_config = ConfigDict(frozen=True)

    id: Optional[str] = None
    status: Optional[str] = None
    update_time: Optional[str] = None
    email_address: Optional[str] = None


class TransitionOrderDTO(BaseModel):
    """Admin update of an order's lifecycle.

    Validates that at least one of ``order_status``, ``is_paid`` or
    ``payment_result`` is present.
    """

    model_config = ConfigDict(frozen=True)

    order_status: Optional[OrderStatus] = None
    is_paid: Optional[bool] = None
    payment_result: Optional[PaymentResultPatchDTO] = None
    notes: str = ""

    @model_validator(mode="after")
    def something_to_update(self):
        if self.order_status is None and self.is_paid is None and self.payment_result is None:
            raise ValueError(
                "Provide at least one of order_status, is_paid or payment_result."
            )
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class GatewayPaymentParams(BaseModel):
    """Parameters the client passes to the gateway's checkout widget.

    ``amount`` is in minor currency units (paise for INR).
    """

    model_config = ConfigDict(frozen=True)

    gateway_order_id: str
    amount: int
    currency: str
    key_id: str


class CreatedOrder(BaseModel):
    """Result of ``OrderService.create_order``.

    ``payment`` is ``None`` for offline payment methods.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    order: Any
    payment: Optional[GatewayPaymentParams] = None
