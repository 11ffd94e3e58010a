"""
Payment gateway port (application/ports) exposing replaceable protocols.

Application depends on these Protocols; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import RefundRequest, RefundResult, WebhookEvent


@runtime_checkable
class PaymentGateway(Protocol):
    """Gateway protocol for third-party payment providers.

    Implementations should be async and side-effect free beyond IO.
    """

    provider: str

    async def refund(self, req: RefundRequest) -> RefundResult: ...

    def parse_webhook(self, body: bytes) -> WebhookEvent: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class WebhookVerifier(Protocol):
    """Authenticates a webhook delivery against the raw request bytes."""

    def verify(self, raw_body: bytes, signature: str | None) -> bool: ...
