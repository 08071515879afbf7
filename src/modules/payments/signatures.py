"""HMAC-SHA256 signatures over raw webhook bodies."""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Lower-case hex HMAC-SHA256 of ``raw_body``."""
    return hmac.new(secret.encode(), raw_body, hashlib.sha256).hexdigest()


def verify_signature(secret: str, raw_body: bytes, provided: Optional[str]) -> bool:
    """Constant-time comparison; a missing signature never verifies."""
    if not provided:
        return False
    return hmac.compare_digest(compute_signature(secret, raw_body), provided.strip())
