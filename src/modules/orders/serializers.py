"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ShippingAddressSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=150)
    address_line1 = serializers.CharField(max_length=255)
    address_line2 = serializers.CharField(
        max_length=255, required=False, default="", allow_blank=True
    )
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100, required=False, default="India")
    phone_number = serializers.CharField(max_length=30)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the checkout request payload. Items come from the cart."""

    shipping_address = ShippingAddressSerializer()
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    tax_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        default=Decimal("0.00"),
    )
    shipping_price = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        default=Decimal("0.00"),
    )


class PaymentResultSerializer(serializers.Serializer):
    id = serializers.CharField(required=False, allow_blank=True)
    status = serializers.CharField(required=False, allow_blank=True)
    update_time = serializers.CharField(required=False, allow_blank=True)
    email_address = serializers.CharField(required=False, allow_blank=True)


class TransitionOrderSerializer(serializers.Serializer):
    order_status = serializers.ChoiceField(choices=OrderStatus.choices, required=False)
    is_paid = serializers.BooleanField(required=False)
    payment_result = PaymentResultSerializer(required=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the product snapshot."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_image",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "user_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, address and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    shipping_address = serializers.SerializerMethodField()
    payment_result = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "items",
            "shipping_address",
            "payment_method",
            "payment_result",
            "gateway_order_id",
            "items_price",
            "tax_price",
            "shipping_price",
            "total_price",
            "order_status",
            "is_paid",
            "paid_at",
            "delivered_at",
            "created_at",
            "updated_at",
            "status_history",
        ]
        read_only_fields = fields

    def get_shipping_address(self, order: Order) -> dict:
        return {
            "full_name": order.shipping_full_name,
            "address_line1": order.shipping_address_line1,
            "address_line2": order.shipping_address_line2,
            "city": order.shipping_city,
            "state": order.shipping_state,
            "postal_code": order.shipping_postal_code,
            "country": order.shipping_country,
            "phone_number": order.shipping_phone_number,
        }

    def get_payment_result(self, order: Order) -> dict:
        return {
            "id": order.payment_result_id,
            "status": order.payment_result_status,
            "update_time": order.payment_result_update_time,
            "email_address": order.payment_result_email,
        }


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "payment_method",
            "total_price",
            "order_status",
            "is_paid",
            "created_at",
        ]
        read_only_fields = fields
