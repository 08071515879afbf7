import re
from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


def _order(user, **overrides) -> Order:
    data = {
        "user": user,
        "shipping_full_name": "Asha Rao",
        "shipping_address_line1": "12 MG Road",
        "shipping_city": "Bengaluru",
        "shipping_state": "Karnataka",
        "shipping_postal_code": "560001",
        "shipping_phone_number": "+91 98450 00000",
        "payment_method": PaymentMethod.COD,
        "total_price": Decimal("23.00"),
    }
    data.update(overrides)
    return Order.objects.create(**data)


class TestStateMachine:
    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING_PAYMENT, OrderStatus.PROCESSING),
            (OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED),
            (OrderStatus.PROCESSING, OrderStatus.SHIPPED),
            (OrderStatus.PROCESSING, OrderStatus.FAILED),
            (OrderStatus.SHIPPED, OrderStatus.DELIVERED),
            (OrderStatus.SHIPPED, OrderStatus.CANCELLED),
        ],
    )
    def test_allowed_transitions(self, current, target):
        assert Order(order_status=current).can_transition_to(target)

    @pytest.mark.parametrize(
        "current, target",
        [
            (OrderStatus.PENDING_PAYMENT, OrderStatus.SHIPPED),
            (OrderStatus.PROCESSING, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.CANCELLED),
            (OrderStatus.CANCELLED, OrderStatus.PROCESSING),
            (OrderStatus.FAILED, OrderStatus.PROCESSING),
        ],
    )
    def test_rejected_transitions(self, current, target):
        assert not Order(order_status=current).can_transition_to(target)

    @pytest.mark.parametrize(
        "status, terminal, holds_stock",
        [
            (OrderStatus.PENDING_PAYMENT, False, True),
            (OrderStatus.PROCESSING, False, True),
            (OrderStatus.SHIPPED, False, False),
            (OrderStatus.DELIVERED, True, False),
            (OrderStatus.CANCELLED, True, False),
            (OrderStatus.FAILED, True, False),
        ],
    )
    def test_terminal_and_stock_holding_states(self, status, terminal, holds_stock):
        order = Order(order_status=status)
        assert order.is_terminal is terminal
        assert order.holds_stock is holds_stock


class TestPaymentInvariants:
    def test_mark_paid_defaults_to_now(self):
        order = Order(order_status=OrderStatus.PENDING_PAYMENT)
        order.mark_paid()

        assert order.is_paid
        assert order.paid_at is not None

    def test_mark_paid_keeps_given_timestamp(self):
        paid_at = datetime(2025, 1, 2, 3, 4, 5, tzinfo=dt_timezone.utc)
        order = Order()
        order.mark_paid(paid_at)
        assert order.paid_at == paid_at

    def test_paid_order_leaves_pending_payment(self):
        order = Order(order_status=OrderStatus.PENDING_PAYMENT, is_paid=True)

        order.enforce_payment_invariants()

        assert order.order_status == OrderStatus.PROCESSING
        assert order.paid_at is not None

    def test_unpaid_order_is_untouched(self):
        order = Order(order_status=OrderStatus.PENDING_PAYMENT, is_paid=False)

        order.enforce_payment_invariants()

        assert order.order_status == OrderStatus.PENDING_PAYMENT
        assert order.paid_at is None

    def test_paid_order_in_later_state_keeps_status(self):
        order = Order(order_status=OrderStatus.SHIPPED, is_paid=True)
        order.enforce_payment_invariants()
        assert order.order_status == OrderStatus.SHIPPED


class TestOrderNumber:
    def test_format(self):
        assert re.fullmatch(r"ORD-\d{8}-[0-9A-F]{6}", Order.generate_order_number())

    def test_assigned_on_save(self, user):
        order = _order(user)
        assert order.order_number.startswith("ORD-")

    def test_next_order_number_skips_taken_numbers(self, user, monkeypatch):
        taken = _order(user)
        candidates = iter([taken.order_number, "ORD-20250101-FFFFFF"])
        monkeypatch.setattr(Order, "generate_order_number", staticmethod(lambda: next(candidates)))

        assert Order.next_order_number() == "ORD-20250101-FFFFFF"

    def test_next_order_number_gives_up(self, user, monkeypatch):
        taken = _order(user)
        monkeypatch.setattr(
            Order, "generate_order_number", staticmethod(lambda: taken.order_number)
        )

        with pytest.raises(RuntimeError):
            Order.next_order_number()


class TestOrderItem:
    def test_subtotal_computed_on_save(self, user, product):
        order = _order(user)
        item = OrderItem.objects.create(
            order=order,
            product=product,
            product_name=product.name,
            quantity=3,
            unit_price=Decimal("3.33"),
        )
        assert item.subtotal == Decimal("9.99")
