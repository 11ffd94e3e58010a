"""
预约数据库模型 - 本服务只读，表结构由预约服务维护
"""
from sqlalchemy import Column, Integer, String, DateTime, Index
from datetime import datetime, timezone

from .base import Base


class AppointmentModel(Base):
    """预约数据库模型（取消流程读取的字段）"""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, nullable=True, index=True, comment="患者ID")
    doctor_id = Column(Integer, nullable=True, index=True, comment="医生ID")

    # 唯一权威的预约开始时刻（UTC）
    scheduled_at = Column(DateTime(timezone=True), nullable=False, comment="预约开始时间")
    status = Column(String(30), nullable=False, default="scheduled", comment="预约状态")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )

    __table_args__ = (
        Index("ix_appointments_doctor_scheduled", "doctor_id", "scheduled_at"),
    )

    def __repr__(self):
        return f"<AppointmentModel(id={self.id}, scheduled_at={self.scheduled_at}, status='{self.status}')>"
