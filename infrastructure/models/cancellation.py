"""
取消记录数据库模型 - 只插入，不更新不删除
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Text,
    ForeignKey, UniqueConstraint, CheckConstraint
)
from datetime import datetime, timezone

from .base import Base


class CancellationModel(Base):
    """取消记录数据库模型"""
    __tablename__ = "cancellations"

    id = Column(Integer, primary_key=True, index=True)

    appointment_id = Column(
        Integer,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        nullable=False,
        comment="预约ID（每个预约最多一条取消记录）"
    )
    initiated_by = Column(
        String(20),
        nullable=False,
        comment="发起方: patient/doctor/hospital/system/admin"
    )
    reason = Column(Text, nullable=False, comment="取消原因")

    refund_amount = Column(Numeric(precision=15, scale=2), nullable=False, default=0, comment="应退金额")
    penalty_amount = Column(Numeric(precision=15, scale=2), nullable=False, default=0, comment="罚金")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True,
        comment="创建时间"
    )

    __table_args__ = (
        UniqueConstraint("appointment_id", name="uq_cancellations_appointment_id"),
        CheckConstraint("refund_amount >= 0", name="refund_non_negative"),
        CheckConstraint("penalty_amount >= 0", name="penalty_non_negative"),
    )

    def __repr__(self):
        return (
            f"<CancellationModel(id={self.id}, appointment_id={self.appointment_id}, "
            f"refund={self.refund_amount}, penalty={self.penalty_amount})>"
        )
