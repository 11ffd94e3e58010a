"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from functools import partial
from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class _GatewayError(BusinessException):
    """Base for gateway errors; picklable so Celery can store and re-raise them."""

    code: int = PaymentCode.PROVIDER_ERROR

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        self.provider = provider
        self.provider_code = provider_code
        self.extra_details = details
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=self.code,
            message=message,
            error_type=type(self).__name__,
            details=full_details,
        )

    def __reduce__(self):
        rebuild = partial(
            type(self),
            provider=self.provider,
            provider_code=self.provider_code,
            details=self.extra_details,
        )
        return (rebuild, (self.message,))


class PaymentProviderError(_GatewayError):
    """Non-retryable gateway rejection (4xx, malformed response)."""

    code = PaymentCode.PROVIDER_ERROR


class PaymentRecoverableError(_GatewayError):
    """Transient gateway failure (5xx, 429, transport); safe to retry."""

    code = PaymentCode.PROVIDER_RECOVERABLE


class PaymentConfigurationError(_GatewayError):
    """Gateway credentials or settings missing."""

    code = PaymentCode.PROVIDER_ERROR
