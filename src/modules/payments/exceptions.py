"""Payment exceptions.

Webhook signature failures use ``modules.core.exceptions.SignatureError``.
"""

from modules.core.exceptions import UpstreamError, ValidationError


class PaymentGatewayError(UpstreamError):
    """The gateway could not create a payment order."""

    code = "payment_gateway_error"
    default_detail = "Could not initiate payment with the gateway. No order was placed; please retry."


class InvalidWebhookPayload(ValidationError):
    code = "invalid_webhook_payload"
    default_detail = "Invalid JSON payload."
