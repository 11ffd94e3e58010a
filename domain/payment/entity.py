"""
支付领域实体 - 支付聚合根与退款状态机
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from enum import Enum

from domain.common.exceptions import DomainValidationException


class PaymentStatus(str, Enum):
    """支付状态枚举"""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    CAPTURED = "captured"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class RefundStatus(str, Enum):
    """
    退款状态

    状态图：none -> pending -> processed
                         \\-> failed
    只允许向前推进；processed 与 failed 均为终态。
    """
    NONE = "none"
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"

    @property
    def rank(self) -> int:
        return _REFUND_RANK[self]

    def can_advance_to(self, target: "RefundStatus") -> bool:
        """目标状态严格位于当前状态之后时才允许推进"""
        return target.rank > self.rank

    @classmethod
    def predecessors(cls, target: "RefundStatus") -> tuple["RefundStatus", ...]:
        """可以推进到 target 的全部当前状态（用于条件更新）"""
        return tuple(s for s in cls if s.can_advance_to(target))


_REFUND_RANK = {
    RefundStatus.NONE: 0,
    RefundStatus.PENDING: 1,
    RefundStatus.PROCESSED: 2,
    RefundStatus.FAILED: 2,
}


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Payment:
    """
    支付聚合根

    业务规则：
    1. 每个预约最多一笔支付
    2. 金额必须大于0
    3. 网关交易号全局唯一
    4. 退款状态只能向前推进，重复推进为幂等空操作
    """

    id: Optional[int]
    appointment_id: int
    amount: Decimal
    status: PaymentStatus = PaymentStatus.CAPTURED
    gateway_name: str = "razorpay"
    gateway_transaction_id: Optional[str] = None
    refund_status: RefundStatus = RefundStatus.NONE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    refund_updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(
                f"支付金额必须大于0: {self.amount}",
                field="amount"
            )
        self.status = PaymentStatus(self.status)
        self.refund_status = RefundStatus(self.refund_status)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.refund_updated_at = _ensure_utc(self.refund_updated_at)

    def advance_refund_status(self, target: RefundStatus) -> bool:
        """
        推进退款状态

        返回 True 表示状态已变化；目标不在当前状态之后时为空操作并返回 False。
        """
        if not self.refund_status.can_advance_to(target):
            return False
        self.refund_status = target
        self.refund_updated_at = datetime.now(timezone.utc)
        self.updated_at = self.refund_updated_at
        return True
