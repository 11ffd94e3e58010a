"""
支付仓储接口 - 定义支付数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Payment, RefundStatus


class PaymentRepository(ABC):
    """支付仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """创建支付记录"""
        pass

    @abstractmethod
    async def get_by_id(self, payment_id: int) -> Optional[Payment]:
        """根据ID获取支付"""
        pass

    @abstractmethod
    async def get_by_appointment_id(self, appointment_id: int) -> Optional[Payment]:
        """根据预约ID获取支付（一个预约一笔支付）"""
        pass

    @abstractmethod
    async def get_by_transaction_id(self, gateway_transaction_id: str) -> Optional[Payment]:
        """根据网关交易号获取支付"""
        pass

    @abstractmethod
    async def advance_refund_status(
        self,
        gateway_transaction_id: str,
        target: RefundStatus,
    ) -> bool:
        """
        原子地推进退款状态

        仅当当前状态属于 RefundStatus.predecessors(target) 时更新（单条条件更新），
        返回是否实际发生了更新。
        """
        pass
