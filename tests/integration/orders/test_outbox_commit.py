from unittest.mock import patch

import pytest

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, ShippingAddressDTO
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _create(order_service, user, shipping_address):
    return order_service.create_order(
        CreateOrderDTO(
            user_id=user.id,
            shipping_address=ShippingAddressDTO(**shipping_address),
            payment_method=PaymentMethod.COD,
        )
    ).order


def test_relay_is_scheduled_after_commit(
    order_service,
    user,
    product,
    fill_cart,
    shipping_address,
    django_capture_on_commit_callbacks,
):
    fill_cart(user, (product, 1))

    with patch("modules.orders.repositories.django_repository.publish_outbox_events") as task:
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            _create(order_service, user, shipping_address)

    assert len(callbacks) == 1
    task.delay.assert_not_called()
    callbacks[0]()
    task.delay.assert_called_once_with()


def test_committed_events_are_published(
    order_service,
    user,
    product,
    fill_cart,
    shipping_address,
    django_capture_on_commit_callbacks,
):
    fill_cart(user, (product, 1))

    with django_capture_on_commit_callbacks(execute=True):
        order = _create(order_service, user, shipping_address)

    row = OutboxEvent.objects.get(aggregate_id=str(order.id))
    assert row.event_type == "OrderCreated"
    assert row.status == EventStatus.PUBLISHED


@pytest.mark.django_db(transaction=True)
def test_unreachable_broker_does_not_fail_committed_order(
    auth_client, api_gateway, user, product, fill_cart, shipping_address
):
    fill_cart(user, (product, 2))

    with patch(
        "modules.core.tasks.publish_outbox_events.delay",
        side_effect=ConnectionError("redis unreachable"),
    ) as delay:
        delay.__qualname__ = "publish_outbox_events.delay"
        response = auth_client.post(
            ORDERS_URL,
            {"shipping_address": shipping_address, "payment_method": "COD"},
            format="json",
        )

    assert response.status_code == 201
    delay.assert_called_once_with()
    order = Order.objects.get()
    assert Product.objects.get(pk=product.pk).stock_quantity == 3
    assert OutboxEvent.objects.filter(aggregate_id=str(order.id)).exists()
    assert not OutboxEvent.objects.exclude(status=EventStatus.PENDING).exists()


@pytest.mark.django_db(transaction=True)
def test_unreachable_broker_does_not_fail_status_change(
    staff_client, api_gateway, order_service, user, product, fill_cart, shipping_address
):
    fill_cart(user, (product, 1))
    order = _create(order_service, user, shipping_address)

    with patch(
        "modules.core.tasks.publish_outbox_events.delay",
        side_effect=ConnectionError("redis unreachable"),
    ) as delay:
        delay.__qualname__ = "publish_outbox_events.delay"
        response = staff_client.patch(
            f"{ORDERS_URL}{order.id}/status/",
            {"order_status": "CANCELLED"},
            format="json",
        )

    assert response.status_code == 200
    assert Order.objects.get(pk=order.pk).order_status == "CANCELLED"
