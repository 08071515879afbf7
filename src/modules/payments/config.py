"""Payment gateway configuration.

Credentials are read once from Django settings into an immutable
``GatewayConfig``.  ``get_gateway_config`` raises ``ImproperlyConfigured``
when they are missing; ``PaymentsConfig.ready`` calls it at startup.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


@dataclass(frozen=True)
class GatewayConfig:
    key_id: str
    key_secret: str
    webhook_secret: str
    currency: str = "INR"
    base_url: str = "https://api.razorpay.com"
    timeout: float = 10.0

    def __repr__(self) -> str:
        return f"GatewayConfig(key_id={self.key_id!r}, currency={self.currency!r})"


@lru_cache(maxsize=1)
def get_gateway_config() -> GatewayConfig:
    key_id = getattr(settings, "RAZORPAY_KEY_ID", "")
    key_secret = getattr(settings, "RAZORPAY_KEY_SECRET", "")
    if not key_id or not key_secret:
        raise ImproperlyConfigured(
            "RAZORPAY_KEY_ID and RAZORPAY_KEY_SECRET must be set."
        )

    return GatewayConfig(
        key_id=key_id,
        key_secret=key_secret,
        webhook_secret=getattr(settings, "RAZORPAY_WEBHOOK_SECRET", "") or key_secret,
        currency=getattr(settings, "PAYMENT_CURRENCY", "INR"),
        base_url=getattr(settings, "RAZORPAY_API_BASE_URL", "https://api.razorpay.com").rstrip("/"),
        timeout=float(getattr(settings, "PAYMENT_GATEWAY_TIMEOUT", 10)),
    )
