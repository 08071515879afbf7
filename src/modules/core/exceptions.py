"""Domain error taxonomy and its HTTP rendering.

Services raise subclasses of ``DomainError``; each carries the HTTP status
and a machine-readable ``code``.  ``standard_exception_handler`` (wired as
DRF's ``EXCEPTION_HANDLER``) renders both domain errors and DRF's own
exceptions in one envelope::

    {"type": "client_error", "errors": [{"code": ..., "detail": ..., "attr": ...}]}
"""

from __future__ import annotations

from typing import Any, Iterator, List, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import exceptions as drf_exceptions
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = structlog.get_logger(__name__)


class DomainError(Exception):
    """Base class for errors raised by the service layer."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "domain_error"
    default_detail: str = "The request could not be processed."

    def __init__(self, detail: Optional[str] = None, attr: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        self.attr = attr
        super().__init__(self.detail)


class ValidationError(DomainError):
    """Malformed or missing input."""

    code = "invalid"
    default_detail = "Invalid input."


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found."


class ConflictError(DomainError):
    """The request conflicts with the current state of a resource."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflict with the current state of the resource."


class AuthorizationError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "permission_denied"
    default_detail = "You do not have permission to perform this action."


class UpstreamError(DomainError):
    """An external collaborator failed; nothing was committed locally."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "upstream_error"
    default_detail = "An upstream service failed. No changes were saved; please retry."


class SignatureError(DomainError):
    code = "invalid_signature"
    default_detail = "Signature mismatch."


# ---------------------------------------------------------------------------
# DRF exception handler
# ---------------------------------------------------------------------------


def _error_type(status_code: int) -> str:
    if status_code >= 500:
        return "server_error"
    return "client_error"


def _flatten_drf_detail(detail: Any, attr: Optional[str] = None) -> Iterator[dict]:
    if isinstance(detail, dict):
        for key, value in detail.items():
            if key == "non_field_errors":
                child = attr
            elif attr is None:
                child = key
            else:
                child = f"{attr}.{key}"
            yield from _flatten_drf_detail(value, child)
    elif isinstance(detail, list):
        for index, value in enumerate(detail):
            if isinstance(value, (dict, list)):
                yield from _flatten_drf_detail(
                    value, f"{attr}.{index}" if attr is not None else str(index)
                )
            else:
                yield from _flatten_drf_detail(value, attr)
    else:
        yield {
            "code": getattr(detail, "code", "invalid"),
            "detail": str(detail),
            "attr": attr,
        }


def _pydantic_errors(exc: PydanticValidationError) -> List[dict]:
    return [
        {
            "code": "invalid",
            "detail": error["msg"],
            "attr": ".".join(str(part) for part in error["loc"]) or None,
        }
        for error in exc.errors()
    ]


def standard_exception_handler(exc: Exception, context: dict) -> Optional[Response]:
    """Render every handled exception in the standard error envelope."""
    if isinstance(exc, DomainError):
        logger.info(
            "api.domain_error",
            error=exc.__class__.__name__,
            status_code=exc.status_code,
        )
        return Response(
            {
                "type": _error_type(exc.status_code),
                "errors": [{"code": exc.code, "detail": exc.detail, "attr": exc.attr}],
            },
            status=exc.status_code,
        )

    if isinstance(exc, PydanticValidationError):
        return Response(
            {"type": "validation_error", "errors": _pydantic_errors(exc)},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = drf_exception_handler(exc, context)
    if response is None:
        return None

    error_type = (
        "validation_error"
        if isinstance(exc, drf_exceptions.ValidationError)
        else _error_type(response.status_code)
    )
    detail = exc.detail if isinstance(exc, drf_exceptions.APIException) else response.data
    response.data = {"type": error_type, "errors": list(_flatten_drf_detail(detail))}
    return response
