"""
取消应用服务（application/services）- 编排取消用例的事务边界与后续动作
"""
from typing import Callable, Optional
from datetime import datetime, timezone
from decimal import Decimal

from application.dtos.cancellations import CancelAppointmentRequest, CancellationDTO
from application.ports.tasks import RefundDispatcher
from core.logging_config import get_logger
from domain.cancellation.events import CancellationCreated
from domain.cancellation.service import CancellationDomainService
from domain.common.exceptions import CancellationNotFoundException
from domain.common.unit_of_work import AbstractUnitOfWork


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CancellationApplicationService:
    """取消应用服务"""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        refund_dispatcher: Optional[RefundDispatcher] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._uow_factory = uow_factory
        self._refund_dispatcher = refund_dispatcher
        self._clock = clock

    async def cancel(self, appointment_id: int, request: CancelAppointmentRequest) -> CancellationDTO:
        """
        取消预约

        计算与写入在同一事务内完成；事务提交后再调度网关退款，
        退款状态由后续 webhook 推进。
        """
        async with self._uow_factory() as uow:
            domain_service = CancellationDomainService(
                uow.appointment_repository,
                uow.payment_repository,
                uow.cancellation_repository,
            )
            record = await domain_service.cancel(
                appointment_id=appointment_id,
                initiated_by=request.initiated_by,
                reason=request.reason,
                now=self._clock(),
            )
            events = domain_service.clear_events()

        logger.info(
            "cancellation_created",
            cancellation_id=record.id,
            appointment_id=record.appointment_id,
            initiated_by=record.initiated_by.value,
            refund_amount=str(record.refund_amount),
            penalty_amount=str(record.penalty_amount),
        )
        for event in events:
            if isinstance(event, CancellationCreated):
                self._schedule_refund(event, request.reason)
        return CancellationDTO.from_record(record)

    async def get_cancellation(self, appointment_id: int) -> CancellationDTO:
        """获取预约的取消记录"""
        async with self._uow_factory(readonly=True) as uow:
            record = await uow.cancellation_repository.get_by_appointment_id(appointment_id)
            if not record:
                raise CancellationNotFoundException(appointment_id)
            return CancellationDTO.from_record(record)

    def _schedule_refund(self, event: CancellationCreated, reason: str) -> None:
        amount = Decimal(event.refund_amount)
        if self._refund_dispatcher is None or amount <= 0:
            return
        if not event.gateway_transaction_id:
            logger.warning(
                "refund_not_dispatched",
                appointment_id=event.appointment_id,
                cancellation_id=event.cancellation_id,
                reason="missing_gateway_transaction_id",
            )
            return
        try:
            task_id = self._refund_dispatcher.dispatch_refund(
                cancellation_id=event.cancellation_id,
                appointment_id=event.appointment_id,
                gateway_transaction_id=event.gateway_transaction_id,
                amount=amount,
                reason=reason,
            )
        except Exception as exc:
            # 取消记录已提交，调度失败只告警，由运维补发退款
            logger.error(
                "refund_dispatch_failed",
                appointment_id=event.appointment_id,
                cancellation_id=event.cancellation_id,
                error=str(exc),
                exc_info=True,
            )
            return
        logger.info(
            "refund_dispatched",
            appointment_id=event.appointment_id,
            cancellation_id=event.cancellation_id,
            task_id=task_id,
        )
