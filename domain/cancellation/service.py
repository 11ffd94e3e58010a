"""
取消领域服务 - 先计算、后持久化，两步位于调用方的同一事务内
"""
from __future__ import annotations

from datetime import datetime
from typing import List

from domain.appointment.repository import AppointmentRepository
from domain.payment.repository import PaymentRepository
from domain.common.exceptions import (
    AppointmentNotFoundException,
    PaymentNotFoundException,
    AlreadyCancelledException,
    InvalidPolicyInputException,
)
from .entity import CancellationRecord, CancellationInitiator, normalize_reason
from .events import CancellationCreated
from .policy import compute_cancellation
from .repository import CancellationRepository


class CancellationDomainService:
    """
    取消领域服务

    职责：
    1. 校验预约与支付存在
    2. 调用策略计算退款/罚金
    3. 写入不可变的取消记录（唯一约束兜底并发）
    4. 产生领域事件
    """

    def __init__(
        self,
        appointment_repository: AppointmentRepository,
        payment_repository: PaymentRepository,
        cancellation_repository: CancellationRepository,
    ):
        self.appointment_repository = appointment_repository
        self.payment_repository = payment_repository
        self.cancellation_repository = cancellation_repository
        self.events: List = []

    async def cancel(
        self,
        appointment_id: int,
        initiated_by: CancellationInitiator | str,
        reason: str,
        now: datetime,
    ) -> CancellationRecord:
        # 边界校验先于任何持久化操作
        cleaned_reason = normalize_reason(reason)
        initiator = CancellationInitiator.parse(initiated_by)

        appointment = await self.appointment_repository.get_by_id(appointment_id)
        if not appointment:
            raise AppointmentNotFoundException(appointment_id)

        payment = await self.payment_repository.get_by_appointment_id(appointment_id)
        if not payment:
            raise PaymentNotFoundException(appointment_id)

        if await self.cancellation_repository.exists_by_appointment_id(appointment_id):
            raise AlreadyCancelledException(appointment_id)

        amounts = compute_cancellation(
            initiated_by=initiator,
            appointment_at=appointment.scheduled_at,
            payment_amount=payment.amount,
            now=now,
        )
        if amounts.refund_amount > payment.amount:
            raise InvalidPolicyInputException(
                "refund_amount exceeds payment amount",
                field="refund_amount",
                details={"refund_amount": str(amounts.refund_amount), "payment_amount": str(payment.amount)},
            )

        record = CancellationRecord(
            id=None,
            appointment_id=appointment_id,
            initiated_by=initiator,
            reason=cleaned_reason,
            refund_amount=amounts.refund_amount,
            penalty_amount=amounts.penalty_amount,
            created_at=now,
        )
        created = await self.cancellation_repository.create(record)

        self.events.append(CancellationCreated(
            cancellation_id=created.id or 0,
            appointment_id=appointment_id,
            payment_id=payment.id or 0,
            gateway_transaction_id=payment.gateway_transaction_id,
            initiated_by=created.initiated_by.value,
            refund_amount=str(created.refund_amount),
            penalty_amount=str(created.penalty_amount),
        ))
        return created

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events
