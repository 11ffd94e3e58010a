"""
支付仓储实现 - 使用SQLAlchemy实现数据访问
"""
from typing import Optional
from decimal import Decimal
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update

from domain.payment.entity import Payment, PaymentStatus, RefundStatus, _ensure_utc
from domain.payment.repository import PaymentRepository
from infrastructure.models.payment import PaymentModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyPaymentRepository(PaymentRepository):
    """支付仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PaymentModel) -> Payment:
        """将数据库模型转换为领域实体"""
        return Payment(
            id=model.id,
            appointment_id=model.appointment_id,
            amount=Decimal(str(model.amount)),
            status=PaymentStatus(model.status),
            gateway_name=model.gateway_name,
            gateway_transaction_id=model.gateway_transaction_id,
            refund_status=RefundStatus(model.refund_status),
            created_at=_ensure_utc(model.created_at),
            updated_at=_ensure_utc(model.updated_at),
            refund_updated_at=_ensure_utc(model.refund_updated_at),
        )

    def _to_model(self, entity: Payment) -> PaymentModel:
        """将领域实体转换为数据库模型"""
        now = datetime.now(timezone.utc)
        return PaymentModel(
            id=entity.id,
            appointment_id=entity.appointment_id,
            amount=entity.amount,
            status=entity.status.value,
            gateway_name=entity.gateway_name,
            gateway_transaction_id=entity.gateway_transaction_id,
            refund_status=entity.refund_status.value,
            refund_updated_at=entity.refund_updated_at,
            created_at=entity.created_at or now,
            updated_at=entity.updated_at or now,
        )

    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        db_payment = self._to_model(payment)
        self.session.add(db_payment)
        await self.session.flush()  # 获取生成的ID
        await self.session.refresh(db_payment)
        return self._to_entity(db_payment)

    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """根据ID获取支付"""
        result = await self.session.execute(
            select(PaymentModel).where(PaymentModel.id == payment_id)
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def get_by_appointment_id(self, appointment_id: int) -> Optional[Payment]:
        """根据预约ID获取支付"""
        result = await self.session.execute(
            select(PaymentModel).where(PaymentModel.appointment_id == appointment_id)
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def get_by_transaction_id(self, gateway_transaction_id: str) -> Optional[Payment]:
        """根据网关交易号获取支付"""
        result = await self.session.execute(
            select(PaymentModel).where(
                PaymentModel.gateway_transaction_id == gateway_transaction_id
            )
        )
        db_payment = result.scalar_one_or_none()
        return self._to_entity(db_payment) if db_payment else None

    async def advance_refund_status(
        self,
        gateway_transaction_id: str,
        target: RefundStatus,
    ) -> bool:
        """
        条件更新退款状态

        WHERE 子句只匹配可以推进到 target 的当前状态，
        并发的两次推进只会有一次命中。
        """
        predecessors = [s.value for s in RefundStatus.predecessors(target)]
        if not predecessors:
            return False
        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(PaymentModel)
            .where(
                PaymentModel.gateway_transaction_id == gateway_transaction_id,
                PaymentModel.refund_status.in_(predecessors),
            )
            .values(refund_status=target.value, refund_updated_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        advanced = (result.rowcount or 0) > 0
        if not advanced:
            logger.debug(
                "refund_status_update_skipped",
                gateway_transaction_id=gateway_transaction_id,
                target=target.value,
            )
        return advanced
