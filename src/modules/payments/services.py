"""Payment webhook reconciliation.

The gateway calls the webhook asynchronously and may deliver the same
event several times.  Processing is idempotent: the first successful
payment event marks the order paid, later ones are acknowledged without
touching it.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone as dt_timezone
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.exceptions import SignatureError
from modules.orders.constants import OrderStatus
from modules.orders.events import OrderPaid, OrderStatusChanged
from modules.payments.exceptions import InvalidWebhookPayload
from modules.payments.signatures import verify_signature

if TYPE_CHECKING:
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

PAYMENT_SUCCESS_EVENTS = frozenset({"order.paid", "payment.captured"})
PAYMENT_FAILED_EVENT = "payment.failed"


@dataclass(frozen=True)
class WebhookResult:
    """Acknowledgment returned to the gateway with HTTP 200."""

    success: bool
    message: str

    def to_response(self) -> Dict[str, Any]:
        return {"success": self.success, "message": self.message}


def _entity(payload: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = payload.get(name) or {}
    entity = section.get("entity") if isinstance(section, dict) else None
    return entity if isinstance(entity, dict) else {}


def _paid_at(payment: Dict[str, Any]) -> datetime:
    created_at = payment.get("created_at")
    if created_at is None:
        return timezone.now()
    try:
        return datetime.fromtimestamp(int(created_at), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("webhook.invalid_payment_timestamp", created_at=repr(created_at))
        return timezone.now()


class PaymentWebhookService:
    def __init__(self, order_repository: IOrderRepository, webhook_secret: str) -> None:
        self._order_repo = order_repository
        self._secret = webhook_secret

    def handle(self, raw_body: bytes, signature: Optional[str]) -> WebhookResult:
        """Verify, parse and dispatch one webhook delivery.

        Raises:
            SignatureError: signature missing or not matching the raw body.
            InvalidWebhookPayload: body is not a JSON object.
        """
        if not verify_signature(self._secret, raw_body, signature):
            logger.warning("webhook.signature_mismatch")
            raise SignatureError()

        try:
            body = json.loads(raw_body)
        except (ValueError, UnicodeDecodeError) as exc:
            logger.warning("webhook.invalid_json")
            raise InvalidWebhookPayload() from exc
        if not isinstance(body, dict):
            raise InvalidWebhookPayload()

        event = body.get("event")
        payload = body.get("payload") or {}
        if not isinstance(payload, dict):
            raise InvalidWebhookPayload()

        log = logger.bind(webhook_event=event)
        log.info("webhook.received")

        if event in PAYMENT_SUCCESS_EVENTS:
            return self._reconcile_payment(payload)

        if event == PAYMENT_FAILED_EVENT:
            payment = _entity(payload, "payment")
            log.warning(
                "webhook.payment_failed",
                gateway_order_id=_entity(payload, "order").get("id")
                or payment.get("order_id"),
                error_description=payment.get("error_description"),
            )
            return WebhookResult(success=True, message="Webhook received.")

        log.info("webhook.unhandled_event")
        return WebhookResult(success=True, message="Webhook received.")

    @transaction.atomic
    def _reconcile_payment(self, payload: Dict[str, Any]) -> WebhookResult:
        """Mark the matching order paid, exactly once."""
        payment = _entity(payload, "payment")
        gateway_order_id = _entity(payload, "order").get("id") or payment.get("order_id")
        log = logger.bind(
            gateway_order_id=gateway_order_id,
            payment_id=payment.get("id"),
        )

        order = self._order_repo.get_by_gateway_order_id_for_update(gateway_order_id)
        if order is None:
            log.error("webhook.order_not_found")
            return WebhookResult(
                success=False,
                message=f"Internal order not found for {gateway_order_id}. Webhook acknowledged.",
            )

        log = log.bind(order_id=str(order.id))
        if order.is_paid:
            log.info("webhook.duplicate")
            return WebhookResult(
                success=True, message="Order already paid. Webhook acknowledged."
            )

        # Payment is recorded on any status; only PENDING_PAYMENT advances.
        paid_at = _paid_at(payment)
        old_status = order.order_status
        order.mark_paid(paid_at)
        order.payment_result_id = payment.get("id")
        order.payment_result_status = payment.get("status")
        order.payment_result_update_time = paid_at.isoformat()
        order.payment_result_email = payment.get("email")
        order.enforce_payment_invariants()

        if order.order_status != old_status:
            self._order_repo.add_history(
                order,
                new_status=order.order_status,
                old_status=old_status,
                notes="Payment confirmed by gateway webhook",
            )
            order.add_domain_event(OrderStatusChanged(aggregate_id=order.id))
        order.add_domain_event(OrderPaid(aggregate_id=order.id))
        self._order_repo.save(order)

        log.info(
            "webhook.order_paid",
            old_status=old_status,
            new_status=order.order_status,
        )
        if old_status != OrderStatus.PENDING_PAYMENT:
            log.warning("webhook.paid_outside_pending_payment", status=old_status)
        return WebhookResult(success=True, message="Webhook received.")
