"""
Background work port: the application schedules gateway refunds through this
Protocol; infrastructure provides the Celery-backed implementation.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class RefundDispatcher(Protocol):
    def dispatch_refund(
        self,
        *,
        cancellation_id: int,
        appointment_id: int,
        gateway_transaction_id: str,
        amount: Decimal,
        reason: Optional[str] = None,
    ) -> Optional[str]: ...
