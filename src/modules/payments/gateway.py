"""Payment gateway adapter.

``PaymentGateway`` is the collaborator interface the order service
depends on; ``RazorpayGateway`` implements it over the Razorpay Orders
REST API with ``requests``.  Any failure surfaces as
``PaymentGatewayError`` so that the caller's transaction rolls back.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import requests
import structlog

from modules.payments.config import GatewayConfig, get_gateway_config
from modules.payments.exceptions import PaymentGatewayError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class GatewayOrder:
    """Payment order as created on the gateway. ``amount`` is in minor units."""

    id: str
    amount: int
    currency: str


class PaymentGateway(ABC):
    @property
    @abstractmethod
    def key_id(self) -> str:
        """Public key the client uses to open the checkout."""

    @property
    @abstractmethod
    def currency(self) -> str:
        """ISO currency code orders are created in."""

    @abstractmethod
    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        """Create a payment order.

        Raises:
            PaymentGatewayError: the gateway is unreachable or refused the order.
        """


class RazorpayGateway(PaymentGateway):
    ORDERS_PATH = "/v1/orders"

    def __init__(self, config: Optional[GatewayConfig] = None) -> None:
        self._config = config or get_gateway_config()

    @property
    def key_id(self) -> str:
        return self._config.key_id

    @property
    def currency(self) -> str:
        return self._config.currency

    def create_order(self, amount: int, currency: str, receipt: str) -> GatewayOrder:
        log = logger.bind(receipt=receipt, amount=amount, currency=currency)
        try:
            response = requests.post(
                f"{self._config.base_url}{self.ORDERS_PATH}",
                json={"amount": amount, "currency": currency, "receipt": receipt},
                auth=(self._config.key_id, self._config.key_secret),
                timeout=self._config.timeout,
            )
        except requests.RequestException as exc:
            log.error("gateway.request_failed", error=str(exc))
            raise PaymentGatewayError() from exc

        if not response.ok:
            log.error(
                "gateway.order_rejected",
                status_code=response.status_code,
                body=response.text[:500],
            )
            raise PaymentGatewayError()

        try:
            data = response.json()
        except ValueError as exc:
            log.error("gateway.invalid_response", body=response.text[:500])
            raise PaymentGatewayError() from exc

        gateway_order_id = data.get("id") if isinstance(data, dict) else None
        if not gateway_order_id:
            log.error("gateway.missing_order_id")
            raise PaymentGatewayError()

        log.info("gateway.order_created", gateway_order_id=gateway_order_id)
        return GatewayOrder(
            id=gateway_order_id,
            amount=int(data.get("amount", amount)),
            currency=data.get("currency", currency),
        )


def get_payment_gateway() -> PaymentGateway:
    """Gateway used by the API views."""
    return RazorpayGateway()
