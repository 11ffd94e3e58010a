"""SQLAlchemy Unit of Work 实现"""
from __future__ import annotations

from typing import Optional, Callable
import inspect

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import PersistenceFailureException
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.appointment_repository import SQLAlchemyAppointmentRepository
from infrastructure.repositories.cancellation_repository import SQLAlchemyCancellationRepository
from infrastructure.repositories.payment_repository import SQLAlchemyPaymentRepository


logger = get_logger(__name__)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    基于SQLAlchemy的Unit of Work

    事务内抛出的 SQLAlchemyError（包括提交失败）在回滚后统一转换为
    PersistenceFailureException；业务异常原样向上传播。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._external_session = session
        self.session: Optional[AsyncSession] = session

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.appointment_repository = SQLAlchemyAppointmentRepository(self.session)
        self.payment_repository = SQLAlchemyPaymentRepository(self.session)
        self.cancellation_repository = SQLAlchemyCancellationRepository(self.session)
        # 仅在非只读模式下显式开启事务
        if not self._readonly:
            try:
                self._transaction = await self.session.begin()
            except SQLAlchemyError as e:
                await self._close()
                logger.error("persistence_failure", operation="begin", error=str(e))
                raise PersistenceFailureException("begin") from e
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        except SQLAlchemyError as e:
            # 提交或回滚本身失败
            logger.error("persistence_failure", operation="commit", error=str(e))
            await self._safe_rollback()
            raise PersistenceFailureException("commit") from e
        finally:
            await self._close()
        if isinstance(exc, SQLAlchemyError):
            logger.error("persistence_failure", operation="transaction", error=str(exc))
            raise PersistenceFailureException("transaction") from exc

    async def _safe_rollback(self) -> None:
        try:
            await self.rollback()
        except SQLAlchemyError as e:
            logger.warning("rollback_failed", error=str(e))

    async def _close(self) -> None:
        # 事务在 commit/rollback 后通常会结束，这里仅在仍然活动时做安全关闭
        tx = getattr(self, "_transaction", None)
        if tx is not None and getattr(tx, "is_active", False):
            close = getattr(tx, "close", None)
            if callable(close):
                res = close()
                if inspect.isawaitable(res):
                    await res
        if self._external_session is None and self.session is not None:
            await self.session.close()
            self.session = None
        self.appointment_repository = None
        self.payment_repository = None
        self.cancellation_repository = None

    async def commit(self) -> None:
        if self._readonly:
            # 只读情况下不提交
            self._committed = True
            return
        if self.session and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
