"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator
from pydantic.types import condecimal


class RefundRequest(BaseModel):
    gateway_transaction_id: str
    amount: condecimal(gt=0, decimal_places=2)  # type: ignore[valid-type]
    currency: str = Field(default="INR")
    reason: Optional[str] = None
    cancellation_id: Optional[int] = None
    appointment_id: Optional[int] = None
    idempotency_key: Optional[str] = None

    @field_validator("currency")
    @classmethod
    def _upper_and_validate_currency(cls, v: str) -> str:
        u = (v or "").upper()
        if len(u) != 3 or not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u


class RefundResult(BaseModel):
    refund_id: str
    status: str
    provider: str
    gateway_transaction_id: str
    amount: Optional[Decimal] = None


class WebhookEvent(BaseModel):
    """Parsed gateway webhook; only the fields reconciliation needs."""

    event: str
    provider: str
    gateway_transaction_id: Optional[str] = None
    refund_id: Optional[str] = None
    # gateway supplied failure description (refund.failed)
    reason: Optional[str] = None

    model_config = ConfigDict(frozen=True)
