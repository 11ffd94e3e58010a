"""
取消记录仓储实现 - 只追加
"""
from typing import Optional
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from domain.cancellation.entity import CancellationRecord, CancellationInitiator
from domain.cancellation.repository import CancellationRepository
from domain.common.exceptions import AlreadyCancelledException
from domain.payment.entity import _ensure_utc
from infrastructure.models.cancellation import CancellationModel
from core.logging_config import get_logger


logger = get_logger(__name__)


def _is_appointment_unique_violation(error: IntegrityError) -> bool:
    # sqlite: "UNIQUE constraint failed: cancellations.appointment_id"
    # postgres: duplicate key value violates unique constraint "uq_cancellations_appointment_id"
    msg = str(error).lower()
    return "appointment_id" in msg and ("unique" in msg or "duplicate" in msg)


class SQLAlchemyCancellationRepository(CancellationRepository):
    """取消记录仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: CancellationModel) -> CancellationRecord:
        """将数据库模型转换为领域实体"""
        return CancellationRecord(
            id=model.id,
            appointment_id=model.appointment_id,
            initiated_by=CancellationInitiator(model.initiated_by),
            reason=model.reason,
            refund_amount=Decimal(str(model.refund_amount)),
            penalty_amount=Decimal(str(model.penalty_amount)),
            created_at=_ensure_utc(model.created_at),
        )

    def _to_model(self, entity: CancellationRecord) -> CancellationModel:
        """将领域实体转换为数据库模型"""
        return CancellationModel(
            id=entity.id,
            appointment_id=entity.appointment_id,
            initiated_by=entity.initiated_by.value,
            reason=entity.reason,
            refund_amount=entity.refund_amount,
            penalty_amount=entity.penalty_amount,
            created_at=entity.created_at,
        )

    async def create(self, record: CancellationRecord) -> CancellationRecord:
        """插入取消记录；唯一约束冲突转换为 AlreadyCancelledException"""
        try:
            db_record = self._to_model(record)
            self.session.add(db_record)
            await self.session.flush()  # 获取生成的ID
            await self.session.refresh(db_record)
            return self._to_entity(db_record)
        except IntegrityError as e:
            await self.session.rollback()
            if _is_appointment_unique_violation(e):
                logger.warning(
                    "cancellation_conflict",
                    appointment_id=record.appointment_id,
                    initiated_by=record.initiated_by.value,
                )
                raise AlreadyCancelledException(record.appointment_id) from e
            raise

    async def get_by_appointment_id(self, appointment_id: int) -> Optional[CancellationRecord]:
        """根据预约ID获取取消记录"""
        result = await self.session.execute(
            select(CancellationModel).where(CancellationModel.appointment_id == appointment_id)
        )
        db_record = result.scalar_one_or_none()
        return self._to_entity(db_record) if db_record else None

    async def exists_by_appointment_id(self, appointment_id: int) -> bool:
        """检查预约是否已取消"""
        result = await self.session.execute(
            select(func.count()).select_from(CancellationModel)
            .where(CancellationModel.appointment_id == appointment_id)
        )
        count = result.scalar()
        return count > 0
