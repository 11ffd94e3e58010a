"""
支付数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime,
    ForeignKey
)
from datetime import datetime, timezone

from .base import Base


class PaymentModel(Base):
    """
    支付数据库模型

    这是数据库表的映射，不包含业务逻辑
    退款状态的推进规则在 domain.payment.entity.RefundStatus 中
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)

    # 一个预约一笔支付
    appointment_id = Column(
        Integer,
        ForeignKey("appointments.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
        comment="预约ID"
    )

    # 金额（Numeric 存储精确金额）
    amount = Column(Numeric(precision=15, scale=2), nullable=False, comment="支付金额")
    status = Column(
        String(30),
        nullable=False,
        default="captured",
        comment="支付状态: pending/authorized/captured/failed/refunded/partially_refunded"
    )

    # 网关信息
    gateway_name = Column(String(50), nullable=False, default="razorpay", comment="支付网关")
    gateway_transaction_id = Column(String(200), unique=True, nullable=True, comment="网关交易号")

    # 退款状态（仅由 webhook 对账推进）
    refund_status = Column(
        String(20),
        nullable=False,
        default="none",
        index=True,
        comment="退款状态: none/pending/processed/failed"
    )
    refund_updated_at = Column(DateTime(timezone=True), nullable=True, comment="退款状态更新时间")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    def __repr__(self):
        return (
            f"<PaymentModel(id={self.id}, appointment_id={self.appointment_id}, "
            f"amount={self.amount}, refund_status='{self.refund_status}')>"
        )
