"""
Refund domain events.

Dataclass events record refund lifecycle facts for downstream handling
(e.g., notifications, alerting). Only emitted when state actually advanced,
so duplicate webhook deliveries never produce a second event.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional
import uuid


@dataclass
class RefundEvent:
    payment_id: int
    appointment_id: int
    gateway_transaction_id: str
    previous_status: str
    gateway_event: Optional[str] = None
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class RefundPending(RefundEvent):
    pass


@dataclass
class RefundProcessed(RefundEvent):
    pass


@dataclass
class RefundFailed(RefundEvent):
    reason: Optional[str] = None
