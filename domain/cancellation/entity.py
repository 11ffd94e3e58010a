"""
取消记录实体 - 创建后不可变
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import (
    DomainValidationException,
    InvalidPolicyInputException,
    InvalidReasonException,
)


class CancellationInitiator(str, Enum):
    """取消发起方"""
    PATIENT = "patient"
    DOCTOR = "doctor"
    HOSPITAL = "hospital"
    SYSTEM = "system"
    ADMIN = "admin"

    @classmethod
    def parse(cls, value: "CancellationInitiator | str") -> "CancellationInitiator":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidPolicyInputException(
                f"Unknown cancellation initiator: {value!r}",
                field="initiated_by",
                details={"initiated_by": str(value)},
            ) from None


def normalize_reason(reason: Optional[str]) -> str:
    """业务规则：取消原因必填，去除首尾空白后不能为空"""
    cleaned = (reason or "").strip()
    if not cleaned:
        raise InvalidReasonException()
    return cleaned


@dataclass(frozen=True)
class CancellationRecord:
    """
    取消记录

    业务规则：
    1. 每个预约最多一条取消记录（数据库唯一约束保证）
    2. 退款金额与罚金均不小于0
    3. 持久化后不再修改、不删除
    """

    id: Optional[int]
    appointment_id: int
    initiated_by: CancellationInitiator
    reason: str
    refund_amount: Decimal
    penalty_amount: Decimal
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        object.__setattr__(self, "initiated_by", CancellationInitiator.parse(self.initiated_by))
        object.__setattr__(self, "reason", normalize_reason(self.reason))
        if self.refund_amount < 0:
            raise DomainValidationException(
                f"refund_amount must be >= 0: {self.refund_amount}",
                field="refund_amount",
            )
        if self.penalty_amount < 0:
            raise DomainValidationException(
                f"penalty_amount must be >= 0: {self.penalty_amount}",
                field="penalty_amount",
            )
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        object.__setattr__(self, "created_at", created.astimezone(timezone.utc))
