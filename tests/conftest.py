import json
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.cart.models import Cart, CartItem
from modules.cart.repositories.django_repository import CartDjangoRepository
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.exceptions import PaymentGatewayError
from modules.payments.gateway import GatewayOrder, PaymentGateway
from modules.payments.signatures import compute_signature
from modules.products.inventory import InventoryLedger
from modules.products.models import Product

User = get_user_model()

WEBHOOK_URL = "/api/v1/payments/webhook/razorpay/"
WEBHOOK_SECRET = "whsec_test"


class FakeGateway(PaymentGateway):
    """In-memory gateway: hands out sequential ids or fails on demand."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    @property
    def key_id(self) -> str:
        return "rzp_test_key"

    @property
    def currency(self) -> str:
        return "INR"

    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        self.calls.append({"amount": amount, "currency": currency, "receipt": receipt})
        if self.fail:
            raise PaymentGatewayError()
        return GatewayOrder(id=f"gw_{len(self.calls)}", amount=amount, currency=currency)


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def user():
    return User.objects.create_user(
        username="shopper", email="shopper@example.com", password="testpass123"
    )


@pytest.fixture()
def other_user():
    return User.objects.create_user(username="someone-else", password="testpass123")


@pytest.fixture()
def staff_user():
    return User.objects.create_user(
        username="staff", password="testpass123", is_staff=True
    )


@pytest.fixture()
def auth_client(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


@pytest.fixture()
def make_product():
    def _make(**overrides) -> Product:
        data = {
            "name": "Brass Diya",
            "category": "Home",
            "images": ["https://cdn.example.com/diya.jpg"],
            "price": Decimal("10.00"),
            "stock_quantity": 5,
            "is_active": True,
        }
        data.update(overrides)
        return Product.objects.create(**data)

    return _make


@pytest.fixture()
def product(make_product):
    return make_product()


@pytest.fixture()
def fill_cart():
    """Put ``(product, quantity)`` lines straight into a user's cart."""

    def _fill(owner, *lines) -> Cart:
        cart, _ = Cart.objects.get_or_create(user=owner)
        for line_product, quantity in lines:
            CartItem.objects.create(
                cart=cart,
                product=line_product,
                quantity=quantity,
                unit_price=line_product.price,
                product_name=line_product.name,
                product_image=line_product.primary_image,
            )
        return cart

    return _fill


@pytest.fixture()
def shipping_address():
    return {
        "full_name": "Asha Rao",
        "address_line1": "12 MG Road",
        "address_line2": "",
        "city": "Bengaluru",
        "state": "Karnataka",
        "postal_code": "560001",
        "country": "India",
        "phone_number": "+91 98450 00000",
    }


@pytest.fixture()
def fake_gateway():
    return FakeGateway()


@pytest.fixture()
def failing_gateway():
    return FakeGateway(fail=True)


@pytest.fixture()
def order_service(fake_gateway):
    return OrderService(
        order_repository=OrderDjangoRepository(),
        cart_repository=CartDjangoRepository(),
        inventory=InventoryLedger(),
        payment_gateway=fake_gateway,
    )


@pytest.fixture()
def api_gateway(monkeypatch, fake_gateway):
    """Make the order API use ``fake_gateway`` instead of Razorpay."""
    monkeypatch.setattr("modules.orders.views.get_payment_gateway", lambda: fake_gateway)
    return fake_gateway


@pytest.fixture()
def razorpay_event():
    """Build a Razorpay-shaped webhook body."""

    def _event(
        event: str,
        gateway_order_id: str = "gw_1",
        payment_id: str = "pay_1",
        status: str = "captured",
        created_at: int | None = 1700000000,
        include_order_entity: bool = True,
        **payment_extra,
    ) -> dict:
        payment = {
            "id": payment_id,
            "order_id": gateway_order_id,
            "status": status,
            "email": "shopper@example.com",
            **payment_extra,
        }
        if created_at is not None:
            payment["created_at"] = created_at
        payload = {"payment": {"entity": payment}}
        if include_order_entity:
            payload["order"] = {"entity": {"id": gateway_order_id}}
        return {"event": event, "payload": payload}

    return _event


@pytest.fixture()
def post_webhook(api_client):
    """POST a body to the webhook, signed with the test secret unless overridden."""

    def _post(body, signature: str | None = None, secret: str = WEBHOOK_SECRET):
        raw = body if isinstance(body, bytes) else json.dumps(body).encode()
        if signature is None:
            signature = compute_signature(secret, raw)
        return api_client.post(
            WEBHOOK_URL,
            data=raw,
            content_type="application/json",
            HTTP_X_RAZORPAY_SIGNATURE=signature,
        )

    return _post
