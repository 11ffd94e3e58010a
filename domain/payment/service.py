"""
退款对账领域服务 - 将已验签的网关事件幂等地应用到支付的退款状态
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from shared.codes.payment_codes import REFUND_EVENT_TO_STATUS
from .entity import Payment, RefundStatus
from .events import RefundEvent, RefundPending, RefundProcessed, RefundFailed
from .repository import PaymentRepository


class ReconciliationOutcome(str, Enum):
    """对账结果（均视为成功处理）"""
    ADVANCED = "advanced"                        # 状态已推进
    UNCHANGED = "unchanged"                      # 重复或乱序事件，空操作
    UNKNOWN_TRANSACTION = "unknown_transaction"  # 本系统无此交易
    IGNORED_EVENT = "ignored_event"              # 与退款无关的事件类型


_EVENT_CLASSES = {
    RefundStatus.PENDING: RefundPending,
    RefundStatus.PROCESSED: RefundProcessed,
    RefundStatus.FAILED: RefundFailed,
}


def target_status_for(event: str, provider: str = "razorpay") -> Optional[RefundStatus]:
    """网关事件名 -> 目标退款状态；非退款事件返回 None"""
    mapped = REFUND_EVENT_TO_STATUS.get(provider, {}).get(event)
    return RefundStatus(mapped) if mapped else None


class RefundReconciliationService:
    """
    退款状态机

    业务规则：
    1. 未知交易号不是错误（可能不在本系统可见范围内）
    2. 仅当目标状态位于当前状态之后时推进，否则为幂等空操作
    3. 推进通过单条条件更新完成，并发重复投递安全
    4. 只有实际推进时才产生领域事件
    """

    def __init__(self, payment_repository: PaymentRepository, provider: str = "razorpay"):
        self.payment_repository = payment_repository
        self.provider = provider
        self.events: List[RefundEvent] = []

    async def apply(
        self,
        event: str,
        gateway_transaction_id: str,
        *,
        reason: Optional[str] = None,
    ) -> ReconciliationOutcome:
        target = target_status_for(event, self.provider)
        if target is None:
            return ReconciliationOutcome.IGNORED_EVENT

        payment = await self.payment_repository.get_by_transaction_id(gateway_transaction_id)
        if payment is None:
            return ReconciliationOutcome.UNKNOWN_TRANSACTION

        if not payment.refund_status.can_advance_to(target):
            return ReconciliationOutcome.UNCHANGED

        advanced = await self.payment_repository.advance_refund_status(gateway_transaction_id, target)
        if not advanced:
            # 并发投递已先一步推进
            return ReconciliationOutcome.UNCHANGED

        self.events.append(self._build_event(payment, target, event, reason))
        return ReconciliationOutcome.ADVANCED

    def _build_event(
        self,
        payment: Payment,
        target: RefundStatus,
        gateway_event: str,
        reason: Optional[str],
    ) -> RefundEvent:
        kwargs = dict(
            payment_id=payment.id or 0,
            appointment_id=payment.appointment_id,
            gateway_transaction_id=payment.gateway_transaction_id or "",
            previous_status=payment.refund_status.value,
            gateway_event=gateway_event,
        )
        if target is RefundStatus.FAILED:
            return RefundFailed(reason=reason, **kwargs)
        return _EVENT_CLASSES[target](**kwargs)

    def clear_events(self) -> List[RefundEvent]:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events
