import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger()

MAX_CORRELATION_ID_LENGTH = 128


class CorrelationIdMiddleware:
    """Extracts or generates a correlation ID for each request.

    Reads the ``X-Request-ID`` header (truncated to 128 chars); when absent,
    generates a UUID4. The ID is bound into structlog's context vars so every
    log line of the request carries it, including gateway webhooks, and is
    echoed back in the ``X-Request-ID`` response header.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        incoming = request.META.get("HTTP_X_REQUEST_ID", "")[:MAX_CORRELATION_ID_LENGTH]
        cid = incoming or str(uuid.uuid4())
        correlation_id_var.set(cid)

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            correlation_id=cid,
            method=request.method,
            path=request.path,
        )

        logger.info("request.started")
        start = time.monotonic()

        response = self.get_response(request)

        logger.info(
            "request.finished",
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - start) * 1000, 2),
        )

        response["X-Request-ID"] = cid
        return response
