"""Small dispatching helpers to decouple Celery from callers."""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from ..config.celery import celery_app
from ..tasks.refunds import EXECUTE_REFUND_TASK


class TaskDispatcher:
    """Internal facade used by application layer to schedule tasks."""

    def dispatch_refund(
        self,
        *,
        cancellation_id: int,
        appointment_id: int,
        gateway_transaction_id: str,
        amount: Decimal,
        reason: Optional[str] = None,
    ) -> Optional[str]:
        """Schedule the gateway refund for a committed cancellation."""
        result = celery_app.send_task(
            EXECUTE_REFUND_TASK,
            kwargs={
                "cancellation_id": cancellation_id,
                "appointment_id": appointment_id,
                "gateway_transaction_id": gateway_transaction_id,
                # JSON serializer: keep money as a string
                "amount": str(amount),
                "reason": reason,
            },
        )
        return getattr(result, "id", None)
