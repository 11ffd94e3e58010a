"""
预约仓储接口
"""
from abc import ABC, abstractmethod
from typing import Optional

from .entity import Appointment


class AppointmentRepository(ABC):
    """预约仓储抽象接口（只读）"""

    @abstractmethod
    async def get_by_id(self, appointment_id: int) -> Optional[Appointment]:
        """根据ID获取预约"""
        pass
