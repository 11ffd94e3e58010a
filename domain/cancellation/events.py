"""
Cancellation domain events.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import uuid


@dataclass
class CancellationCreated:
    cancellation_id: int
    appointment_id: int
    payment_id: int
    gateway_transaction_id: str | None
    initiated_by: str
    refund_amount: str
    penalty_amount: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
