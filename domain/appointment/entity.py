"""
预约实体 - 本服务只读取取消流程需要的字段
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from domain.common.exceptions import DomainValidationException


@dataclass
class Appointment:
    """
    预约（只读）

    scheduled_at 为唯一权威的预约开始时刻（带时区，统一为 UTC），
    不再由日期 + 时段字符串拼接得出。
    """

    id: Optional[int]
    patient_id: Optional[int]
    doctor_id: Optional[int]
    scheduled_at: datetime
    status: str = "scheduled"
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.scheduled_at.tzinfo is None:
            raise DomainValidationException(
                "scheduled_at must be timezone-aware",
                field="scheduled_at",
            )
        self.scheduled_at = self.scheduled_at.astimezone(timezone.utc)
