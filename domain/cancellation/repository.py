"""
取消记录仓储接口 - 只追加，不提供更新与删除
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import CancellationRecord


class CancellationRepository(ABC):
    """取消记录仓储抽象接口"""

    @abstractmethod
    async def create(self, record: CancellationRecord) -> CancellationRecord:
        """
        插入取消记录

        同一预约已存在记录时必须抛出 AlreadyCancelledException
        （由唯一约束在同一事务内原子判定）
        """
        pass

    @abstractmethod
    async def get_by_appointment_id(self, appointment_id: int) -> Optional[CancellationRecord]:
        """根据预约ID获取取消记录"""
        pass

    @abstractmethod
    async def exists_by_appointment_id(self, appointment_id: int) -> bool:
        """检查预约是否已取消"""
        pass
