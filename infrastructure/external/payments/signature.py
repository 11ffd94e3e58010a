"""
Webhook signature verification (HMAC-SHA256 over the raw request body).

The signature is computed over the exact bytes received; re-serializing the
parsed JSON would change whitespace/key order and break verification.
"""
from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from core.logging_config import get_logger


logger = get_logger(__name__)


def compute_signature(raw_body: bytes, secret: str) -> str:
    """Lowercase hex HMAC-SHA256 of ``raw_body`` keyed by ``secret``."""
    return hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()


def verify_signature(raw_body: bytes, signature_header: Optional[str], secret: Optional[str]) -> bool:
    """Constant-time check of ``signature_header`` against the expected digest.

    Never raises: a missing/blank/non-ASCII header or an empty secret is
    simply a failed verification.
    """
    if not secret or not signature_header:
        return False
    candidate = signature_header.strip()
    if not candidate:
        return False
    try:
        candidate_bytes = candidate.encode("ascii")
    except UnicodeEncodeError:
        return False
    expected = compute_signature(raw_body or b"", secret).encode("ascii")
    return hmac.compare_digest(expected, candidate_bytes)


class WebhookAuthenticator:
    """Binds the webhook secret at construction; no global settings lookups."""

    def __init__(self, secret: Optional[str], *, provider: str = "razorpay") -> None:
        self._secret = secret or ""
        self.provider = provider
        if not self._secret:
            logger.warning("webhook_secret_missing", provider=provider)

    @property
    def configured(self) -> bool:
        return bool(self._secret)

    def verify(self, raw_body: bytes, signature: Optional[str]) -> bool:
        return verify_signature(raw_body, signature, self._secret)
