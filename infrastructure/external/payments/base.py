"""
Base payment client implementing shared concerns: http, retry, logging, mapping.

Concrete providers should subclass and implement provider-specific logic.
"""
from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Awaitable, Callable, Optional
from contextlib import asynccontextmanager

import httpx
from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from core.logging_config import get_logger
from application.dtos.payments import RefundRequest, RefundResult, WebhookEvent
from application.ports.payment_gateway import PaymentGateway
from infrastructure.external.payments.exceptions import (
    PaymentProviderError,
    PaymentRecoverableError,
)
from shared.codes.payment_codes import PROVIDER_REFUND_STATUS_TO_INTERNAL


logger = get_logger(__name__)

# ISO-4217 minor unit exponents that differ from the default of 2
_ZERO_DECIMAL_CURRENCIES = {"JPY", "KRW"}


def to_minor_units(amount: Decimal, currency: str) -> int:
    """Decimal major units -> integer minor units (e.g. INR rupees -> paise)."""
    exponent = 0 if currency.upper() in _ZERO_DECIMAL_CURRENCIES else 2
    scaled = Decimal(amount) * (Decimal(10) ** exponent)
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class BasePaymentClient(PaymentGateway):
    provider: str = "base"

    def __init__(
        self,
        *,
        base_url: str = "",
        auth: Optional[tuple[str, str]] = None,
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url
        self._auth = auth
        self._timeouts_cfg = timeouts or {"connect": 1.0, "read": 3.0, "write": 3.0, "total": 5.0}
        self._retry_cfg = retry or {"max": 2, "base": 0.2}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def timeouts(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=self._timeouts_cfg["connect"],
            read=self._timeouts_cfg["read"],
            write=self._timeouts_cfg["write"],
            timeout=self._timeouts_cfg["total"],
        )

    @asynccontextmanager
    async def client(self):
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                auth=self._auth,
                timeout=self.timeouts,
                transport=self._transport,
            )
        try:
            yield self._client
        finally:
            # Keep open for reuse; explicit aclose() will close.
            ...

    async def aclose(self) -> None:
        """Close underlying HTTP client if created."""
        if self._client is not None:
            try:
                await self._client.aclose()
            finally:
                self._client = None

    async def _retry(self, fn: Callable[[], Awaitable[Any]]):
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(int(self._retry_cfg["max"]) + 1),
            wait=wait_exponential(multiplier=self._retry_cfg["base"], min=0.1, max=2.0),
            retry=retry_if_exception_type((httpx.TimeoutException, httpx.TransportError)),
            reraise=True,
        ):
            with attempt:
                return await fn()

    async def _post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST with transport retries; map HTTP failures to provider errors."""

        async def _send() -> httpx.Response:
            async with self.client() as http:
                return await http.post(path, json=payload)

        try:
            resp = await self._retry(_send)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise PaymentRecoverableError(str(exc) or exc.__class__.__name__, provider=self.provider) from exc

        if resp.status_code == 429 or resp.status_code >= 500:
            raise PaymentRecoverableError(
                f"{self.provider} returned HTTP {resp.status_code}",
                provider=self.provider,
                provider_code=str(resp.status_code),
            )
        try:
            body = resp.json()
        except ValueError as exc:
            raise PaymentProviderError(
                "Malformed gateway response",
                provider=self.provider,
                provider_code=str(resp.status_code),
            ) from exc
        if resp.status_code >= 400:
            error = body.get("error") if isinstance(body, dict) else None
            error = error if isinstance(error, dict) else {}
            raise PaymentProviderError(
                str(error.get("description") or f"HTTP {resp.status_code}"),
                provider=self.provider,
                provider_code=str(error.get("code") or resp.status_code),
            )
        if not isinstance(body, dict):
            raise PaymentProviderError("Malformed gateway response", provider=self.provider)
        return body

    # Default implementations raise to force override where needed
    async def refund(self, req: RefundRequest) -> RefundResult:  # type: ignore[override]
        raise NotImplementedError

    def parse_webhook(self, body: bytes) -> WebhookEvent:  # type: ignore[override]
        raise NotImplementedError

    # Helpers
    def _map_refund_status(self, provider_status: str) -> str:
        mapping = PROVIDER_REFUND_STATUS_TO_INTERNAL.get(self.provider, {})
        return mapping.get(provider_status, provider_status)

    def _log(self, event: str, **kwargs) -> None:
        logger.info(
            event,
            provider=self.provider,
            **kwargs,
        )
