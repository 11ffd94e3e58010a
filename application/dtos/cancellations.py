"""
Cancellation DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from pydantic import BaseModel, Field, ConfigDict, field_serializer

from domain.cancellation.entity import CancellationRecord


class CancelAppointmentRequest(BaseModel):
    initiated_by: str = Field(..., min_length=1, max_length=20, description="patient/doctor/hospital/system/admin")
    reason: str = Field(..., max_length=2000, description="Cancellation reason")


class CancellationDTO(BaseModel):
    id: int
    appointment_id: int
    initiated_by: str
    reason: str
    refund_amount: Decimal
    penalty_amount: Decimal
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("refund_amount", "penalty_amount")
    def _serialize_money(self, value: Decimal) -> str:
        return f"{value:.2f}"

    @classmethod
    def from_record(cls, record: CancellationRecord) -> "CancellationDTO":
        return cls(
            id=record.id or 0,
            appointment_id=record.appointment_id,
            initiated_by=record.initiated_by.value,
            reason=record.reason,
            refund_amount=record.refund_amount,
            penalty_amount=record.penalty_amount,
            created_at=record.created_at,
        )
