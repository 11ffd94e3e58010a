"""
Razorpay adapter over the REST API (httpx + tenacity via BasePaymentClient).

- Refunds: ``POST /payments/{payment_id}/refund`` with the amount in paise,
  HTTP basic auth (key_id / key_secret).
- Webhooks: JSON ``{"event": ..., "payload": {"payment": {"entity": {"id": ...}}}}``.
  Signature verification is done separately by ``WebhookAuthenticator``
  before this parser runs.
"""
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, Optional

import httpx

from application.dtos.payments import RefundRequest, RefundResult, WebhookEvent
from domain.common.exceptions import InvalidWebhookPayloadException
from infrastructure.external.payments.base import BasePaymentClient, to_minor_units
from infrastructure.external.payments.exceptions import (
    PaymentConfigurationError,
    PaymentProviderError,
)


class RazorpayClient(BasePaymentClient):
    provider = "razorpay"

    def __init__(
        self,
        *,
        key_id: Optional[str],
        key_secret: Optional[str],
        base_url: str = "https://api.razorpay.com/v1",
        refund_speed: str = "normal",
        currency: str = "INR",
        timeouts: Optional[dict[str, float]] = None,
        retry: Optional[dict[str, Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        auth = (key_id, key_secret) if key_id and key_secret else None
        super().__init__(
            base_url=base_url,
            auth=auth,
            timeouts=timeouts,
            retry=retry,
            transport=transport,
        )
        self.refund_speed = refund_speed
        self.currency = currency

    async def refund(self, req: RefundRequest) -> RefundResult:  # type: ignore[override]
        if self._auth is None:
            raise PaymentConfigurationError("Razorpay API keys not configured", provider=self.provider)

        notes: dict[str, Any] = {}
        if req.reason:
            notes["reason"] = req.reason[:255]
        if req.cancellation_id is not None:
            notes["cancellation_id"] = str(req.cancellation_id)
        if req.appointment_id is not None:
            notes["appointment_id"] = str(req.appointment_id)
        payload: dict[str, Any] = {
            "amount": to_minor_units(req.amount, req.currency or self.currency),
            "speed": self.refund_speed,
            "notes": notes,
        }
        if req.idempotency_key:
            payload["receipt"] = req.idempotency_key[:40]

        body = await self._post_json(f"/payments/{req.gateway_transaction_id}/refund", payload)
        refund_id = body.get("id")
        if not refund_id:
            raise PaymentProviderError("Refund response missing id", provider=self.provider)

        self._log(
            "refund_requested",
            gateway_transaction_id=req.gateway_transaction_id,
            refund_id=refund_id,
            amount=str(req.amount),
        )
        amount_minor = body.get("amount")
        return RefundResult(
            refund_id=str(refund_id),
            status=self._map_refund_status(str(body.get("status", "pending"))),
            provider=self.provider,
            gateway_transaction_id=str(body.get("payment_id") or req.gateway_transaction_id),
            amount=(Decimal(amount_minor) / 100) if isinstance(amount_minor, int) else None,
        )

    def parse_webhook(self, body: bytes) -> WebhookEvent:  # type: ignore[override]
        try:
            data = json.loads(body)
        except (ValueError, UnicodeDecodeError) as exc:
            raise InvalidWebhookPayloadException("body is not valid JSON") from exc
        if not isinstance(data, dict):
            raise InvalidWebhookPayloadException("body must be a JSON object")

        event = data.get("event")
        if not isinstance(event, str) or not event:
            raise InvalidWebhookPayloadException("missing event")

        payload = data.get("payload")
        if not isinstance(payload, dict):
            raise InvalidWebhookPayloadException("missing payload")

        payment_entity = _entity(payload, "payment")
        refund_entity = _entity(payload, "refund")
        transaction_id = payment_entity.get("id") if payment_entity else None
        if transaction_id is None and refund_entity:
            # refund entity carries the parent payment id too
            transaction_id = refund_entity.get("payment_id")

        if event.startswith("refund.") and not transaction_id:
            raise InvalidWebhookPayloadException("missing payload.payment.entity.id")

        reason = None
        if refund_entity:
            reason = refund_entity.get("error_description") or None

        return WebhookEvent(
            event=event,
            provider=self.provider,
            gateway_transaction_id=str(transaction_id) if transaction_id else None,
            refund_id=str(refund_entity["id"]) if refund_entity and refund_entity.get("id") else None,
            reason=reason,
        )


def _entity(payload: dict, name: str) -> Optional[dict]:
    wrapper = payload.get(name)
    if not isinstance(wrapper, dict):
        return None
    entity = wrapper.get("entity")
    return entity if isinstance(entity, dict) else None
