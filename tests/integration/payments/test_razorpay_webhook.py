import json
from datetime import datetime, timezone as dt_timezone
from unittest.mock import patch

import pytest

from modules.core.models import OutboxEvent
from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import CreateOrderDTO, ShippingAddressDTO, TransitionOrderDTO
from modules.orders.models import Order, OrderStatusHistory

pytestmark = pytest.mark.integration


@pytest.fixture()
def online_order(order_service, user, product, fill_cart, shipping_address):
    """Pending-payment order whose gateway order id is ``gw_1``."""
    fill_cart(user, (product, 2))
    return order_service.create_order(
        CreateOrderDTO(
            user_id=user.id,
            shipping_address=ShippingAddressDTO(**shipping_address),
            payment_method=PaymentMethod.ONLINE,
        )
    ).order


class TestPaymentCaptured:
    def test_marks_order_paid(self, post_webhook, razorpay_event, online_order):
        response = post_webhook(razorpay_event("order.paid"))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Webhook received."}

        online_order.refresh_from_db()
        assert online_order.is_paid
        assert online_order.order_status == OrderStatus.PROCESSING
        assert online_order.paid_at == datetime.fromtimestamp(1700000000, tz=dt_timezone.utc)
        assert online_order.payment_result_id == "pay_1"
        assert online_order.payment_result_status == "captured"
        assert online_order.payment_result_email == "shopper@example.com"

    def test_replay_is_acknowledged_without_changes(
        self, post_webhook, razorpay_event, online_order
    ):
        first = post_webhook(razorpay_event("order.paid"))
        online_order.refresh_from_db()
        paid_at = online_order.paid_at
        history_count = OrderStatusHistory.objects.filter(order=online_order).count()
        outbox_count = OutboxEvent.objects.count()

        second = post_webhook(
            razorpay_event("payment.captured", payment_id="pay_2", created_at=1800000000)
        )

        assert first.status_code == second.status_code == 200
        assert second.json()["success"] is True
        online_order.refresh_from_db()
        assert online_order.paid_at == paid_at
        assert online_order.payment_result_id == "pay_1"
        assert OrderStatusHistory.objects.filter(order=online_order).count() == history_count
        assert OutboxEvent.objects.count() == outbox_count

    def test_records_system_history_and_events(
        self, post_webhook, razorpay_event, online_order
    ):
        post_webhook(razorpay_event("payment.captured"))

        history = OrderStatusHistory.objects.get(
            order=online_order, new_status=OrderStatus.PROCESSING
        )
        assert history.old_status == OrderStatus.PENDING_PAYMENT
        assert history.user_id is None
        event_types = set(
            OutboxEvent.objects.filter(aggregate_id=str(online_order.id)).values_list(
                "event_type", flat=True
            )
        )
        assert {"OrderCreated", "OrderStatusChanged", "OrderPaid"} <= event_types

    def test_order_id_taken_from_payment_entity(
        self, post_webhook, razorpay_event, online_order
    ):
        response = post_webhook(razorpay_event("order.paid", include_order_entity=False))

        assert response.status_code == 200
        online_order.refresh_from_db()
        assert online_order.is_paid

    def test_missing_payment_timestamp_uses_now(
        self, post_webhook, razorpay_event, online_order
    ):
        post_webhook(razorpay_event("order.paid", created_at=None))

        online_order.refresh_from_db()
        assert online_order.paid_at is not None

    @pytest.mark.parametrize("created_at", ["not-a-number", "", 10**20])
    def test_unreadable_payment_timestamp_uses_now(
        self, post_webhook, razorpay_event, online_order, created_at
    ):
        response = post_webhook(razorpay_event("order.paid", created_at=created_at))

        assert response.status_code == 200
        online_order.refresh_from_db()
        assert online_order.is_paid
        assert online_order.paid_at is not None
        assert online_order.paid_at.year > 2000

    def test_payment_for_cancelled_order_is_recorded_without_reopening(
        self, post_webhook, razorpay_event, online_order, order_service, product
    ):
        order_service.transition_order(
            online_order.id, TransitionOrderDTO(order_status=OrderStatus.CANCELLED)
        )
        history_count = OrderStatusHistory.objects.filter(order=online_order).count()

        response = post_webhook(razorpay_event("order.paid"))

        assert response.status_code == 200
        assert response.json()["success"] is True
        online_order.refresh_from_db()
        assert online_order.is_paid
        assert online_order.order_status == OrderStatus.CANCELLED
        assert online_order.payment_result_id == "pay_1"
        assert OrderStatusHistory.objects.filter(order=online_order).count() == history_count
        product.refresh_from_db()
        assert product.stock_quantity == 5

    def test_unknown_gateway_order_is_acknowledged(self, post_webhook, razorpay_event):
        response = post_webhook(razorpay_event("order.paid", gateway_order_id="gw_404"))

        assert response.status_code == 200
        assert response.json()["success"] is False
        assert "gw_404" in response.json()["message"]


class TestOtherEvents:
    def test_payment_failed_leaves_order_pending(
        self, post_webhook, razorpay_event, online_order
    ):
        response = post_webhook(
            razorpay_event("payment.failed", status="failed", error_description="Declined")
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        online_order.refresh_from_db()
        assert online_order.is_paid is False
        assert online_order.order_status == OrderStatus.PENDING_PAYMENT

    def test_unhandled_event_is_acknowledged(self, post_webhook):
        response = post_webhook({"event": "refund.created", "payload": {}})

        assert response.status_code == 200
        assert response.json()["success"] is True


class TestRejectedDeliveries:
    def test_bad_signature(self, post_webhook, razorpay_event, online_order):
        response = post_webhook(razorpay_event("order.paid"), signature="0" * 64)

        assert response.status_code == 400
        assert response.json()["errors"][0]["detail"] == "Signature mismatch."
        online_order.refresh_from_db()
        assert online_order.is_paid is False

    def test_signed_with_wrong_secret(self, post_webhook, razorpay_event):
        response = post_webhook(razorpay_event("order.paid"), secret="not-the-secret")
        assert response.status_code == 400

    def test_missing_signature_header(self, api_client, razorpay_event):
        response = api_client.post(
            "/api/v1/payments/webhook/razorpay/",
            data=json.dumps(razorpay_event("order.paid")),
            content_type="application/json",
        )
        assert response.status_code == 400

    def test_malformed_json(self, post_webhook):
        response = post_webhook(b"{not json")

        assert response.status_code == 400
        assert response.json()["errors"][0]["detail"] == "Invalid JSON payload."

    def test_json_that_is_not_an_object(self, post_webhook):
        assert post_webhook(b"[1, 2, 3]").status_code == 400

    def test_unexpected_failure_is_500(self, post_webhook, razorpay_event, online_order):
        with patch.object(Order, "save", side_effect=RuntimeError("db down")):
            response = post_webhook(razorpay_event("order.paid"))

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Error updating order."}
        online_order.refresh_from_db()
        assert online_order.is_paid is False
