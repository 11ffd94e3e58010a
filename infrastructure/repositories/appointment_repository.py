"""
预约仓储实现 - 只读
"""
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from domain.appointment.entity import Appointment
from domain.appointment.repository import AppointmentRepository
from domain.payment.entity import _ensure_utc
from infrastructure.models.appointment import AppointmentModel


class SQLAlchemyAppointmentRepository(AppointmentRepository):
    """预约仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: AppointmentModel) -> Appointment:
        return Appointment(
            id=model.id,
            patient_id=model.patient_id,
            doctor_id=model.doctor_id,
            # SQLite 不保存时区，读出的 naive 时间按 UTC 处理
            scheduled_at=_ensure_utc(model.scheduled_at),
            status=model.status,
            created_at=_ensure_utc(model.created_at),
        )

    async def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        result = await self.session.execute(
            select(AppointmentModel).where(AppointmentModel.id == appointment_id)
        )
        db_appointment = result.scalar_one_or_none()
        return self._to_entity(db_appointment) if db_appointment else None
