"""Payment gateway webhook endpoint.

Unauthenticated: trust comes from the HMAC signature over the raw body.
"""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.exceptions import DomainError
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.payments.config import get_gateway_config
from modules.payments.services import PaymentWebhookService

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"


class RazorpayWebhookView(APIView):
    """POST /api/v1/payments/webhook/razorpay/

    200 once the signature is verified (including unknown orders and
    duplicates), 400 for a bad signature or body, 500 when local state
    could not be updated so that the gateway retries.
    """

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        # Read before anything touches request.data.
        raw_body = request.body
        service = PaymentWebhookService(
            order_repository=OrderDjangoRepository(),
            webhook_secret=get_gateway_config().webhook_secret,
        )
        try:
            result = service.handle(raw_body, request.headers.get(SIGNATURE_HEADER))
        except DomainError:
            raise
        except Exception:
            logger.exception("webhook.processing_failed")
            return Response(
                {"success": False, "message": "Error updating order."},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )
        return Response(result.to_response(), status=status.HTTP_200_OK)
