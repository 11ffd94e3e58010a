"""
Application services orchestrating payment use-cases.

These classes depend only on the application ports and DTOs.
Gateway/authenticator implementations are provided by infrastructure and
must be injected from the composition root (API/tasks), keeping
dependencies one-way.
"""
from __future__ import annotations

import hashlib
from typing import Callable, List, Optional

from application.dtos.payments import RefundRequest, RefundResult, WebhookEvent
from application.ports.payment_gateway import PaymentGateway, WebhookVerifier
from core.logging_config import get_logger
from domain.common.exceptions import UnauthenticatedWebhookException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.events import RefundEvent, RefundFailed
from domain.payment.service import ReconciliationOutcome, RefundReconciliationService


logger = get_logger(__name__)


def _ensure_idempotency_key(req: RefundRequest) -> None:
    if req.idempotency_key:
        return
    # Stable, reproducible key derived from business identifiers (no timestamp)
    base = f"refund|{req.cancellation_id or ''}|{req.gateway_transaction_id}|{req.amount}|{req.currency}"
    req.idempotency_key = hashlib.sha256(base.encode("utf-8")).hexdigest()


class PaymentWebhookService:
    """Authenticates gateway webhooks and reconciles refund status."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        authenticator: WebhookVerifier,
        gateway: PaymentGateway,
    ) -> None:
        self._uow_factory = uow_factory
        self._authenticator = authenticator
        self._gateway = gateway

    @property
    def provider(self) -> str:
        return self._gateway.provider

    async def handle_webhook(self, raw_body: bytes, signature: Optional[str]) -> ReconciliationOutcome:
        # Verification precedes parsing: unauthenticated bytes are never interpreted
        if not self._authenticator.verify(raw_body, signature):
            logger.warning(
                "webhook_signature_invalid",
                provider=self.provider,
                signature_present=bool(signature),
                body_size=len(raw_body or b""),
            )
            raise UnauthenticatedWebhookException(self.provider)

        event = self._gateway.parse_webhook(raw_body)
        outcome, events = await self._reconcile(event)
        self._log_outcome(event, outcome)
        self._publish(events)
        return outcome

    async def _reconcile(self, event: WebhookEvent) -> tuple[ReconciliationOutcome, List[RefundEvent]]:
        if not event.gateway_transaction_id:
            return ReconciliationOutcome.IGNORED_EVENT, []
        async with self._uow_factory() as uow:
            reconciliation = RefundReconciliationService(uow.payment_repository, provider=self.provider)
            outcome = await reconciliation.apply(
                event.event,
                event.gateway_transaction_id,
                reason=event.reason,
            )
            events = reconciliation.clear_events()
        return outcome, events

    def _log_outcome(self, event: WebhookEvent, outcome: ReconciliationOutcome) -> None:
        fields = dict(
            provider=self.provider,
            gateway_event=event.event,
            gateway_transaction_id=event.gateway_transaction_id,
        )
        if outcome is ReconciliationOutcome.ADVANCED:
            logger.info("refund_status_advanced", **fields)
        elif outcome is ReconciliationOutcome.UNCHANGED:
            logger.info("refund_status_unchanged", **fields)
        elif outcome is ReconciliationOutcome.UNKNOWN_TRANSACTION:
            logger.warning("webhook_unknown_transaction", **fields)
        else:
            logger.info("webhook_event_ignored", **fields)

    def _publish(self, events: List[RefundEvent]) -> None:
        """Publish after commit; only state advances produce events."""
        for event in events:
            if isinstance(event, RefundFailed):
                logger.error(
                    "refund_failed_alert",
                    event_id=event.event_id,
                    payment_id=event.payment_id,
                    appointment_id=event.appointment_id,
                    gateway_transaction_id=event.gateway_transaction_id,
                    previous_status=event.previous_status,
                    reason=event.reason,
                )
            else:
                logger.info(
                    "refund_event_published",
                    event_type=type(event).__name__,
                    event_id=event.event_id,
                    payment_id=event.payment_id,
                    appointment_id=event.appointment_id,
                )


class RefundExecutionService:
    """Requests a refund at the gateway; refund status is left to webhooks."""

    def __init__(self, gateway: PaymentGateway) -> None:
        self.gateway = gateway

    async def refund(self, req: RefundRequest) -> RefundResult:
        _ensure_idempotency_key(req)
        logger.info(
            "payment_refund_request",
            provider=self.gateway.provider,
            gateway_transaction_id=req.gateway_transaction_id,
            cancellation_id=req.cancellation_id,
            amount=str(req.amount),
            idempotency_key=req.idempotency_key,
        )
        result = await self.gateway.refund(req)
        logger.info(
            "payment_refund_response",
            provider=result.provider,
            refund_id=result.refund_id,
            status=result.status,
        )
        return result

    async def aclose(self) -> None:
        # Best-effort close underlying resources
        close = getattr(self.gateway, "aclose", None)
        if callable(close):
            await close()
