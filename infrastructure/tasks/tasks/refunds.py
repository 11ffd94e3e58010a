"""Refund related Celery tasks"""
from __future__ import annotations

import asyncio
from decimal import Decimal
from typing import Optional

from celery import shared_task

from ..utils.base_task import BaseTask
from application.dtos.payments import RefundRequest
from application.services.payment_service import RefundExecutionService
from core.logging_config import get_logger
from core.settings import payment_settings
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.payments.exceptions import PaymentRecoverableError

logger = get_logger(__name__)

EXECUTE_REFUND_TASK = "payments.execute_refund"


async def _execute(req: RefundRequest) -> dict:
    service = RefundExecutionService(get_payment_gateway())
    try:
        result = await service.refund(req)
    finally:
        await service.aclose()
    return {"refund_id": result.refund_id, "status": result.status}


@shared_task(
    name=EXECUTE_REFUND_TASK,
    bind=True,
    base=BaseTask,
    autoretry_for=(PaymentRecoverableError,),
    retry_backoff=True,
    retry_backoff_max=600,
    retry_jitter=True,
    retry_kwargs={"max_retries": 5},
)
def execute_refund(
    self,
    cancellation_id: int,
    appointment_id: int,
    gateway_transaction_id: str,
    amount: str,
    reason: Optional[str] = None,
) -> dict:
    """Ask the gateway to refund ``amount`` for a committed cancellation.

    Only transient gateway errors are retried; refund_status is advanced
    later by the gateway's webhooks, never here.
    """
    req = RefundRequest(
        gateway_transaction_id=gateway_transaction_id,
        amount=Decimal(amount),
        currency=payment_settings.currency,
        reason=reason,
        cancellation_id=cancellation_id,
        appointment_id=appointment_id,
        idempotency_key=f"cancellation-{cancellation_id}",
    )
    result = asyncio.run(_execute(req))
    logger.info(
        "refund_task_completed",
        cancellation_id=cancellation_id,
        appointment_id=appointment_id,
        refund_id=result["refund_id"],
        status=result["status"],
    )
    return result
