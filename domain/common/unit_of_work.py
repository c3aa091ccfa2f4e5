"""Unit of Work 抽象定义"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.order.repository import OrderRepository
from domain.webhook.repository import AuditLogRepository


class AbstractUnitOfWork(ABC):
    """
    应用层事务边界

    `async with uow:` 正常退出时提交（只读模式除外），异常退出时回滚。
    对账写订单与追加审计记录各自使用独立的 UoW。
    """

    order_repository: OrderRepository
    webhook_log_repository: AuditLogRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly

    @property
    def readonly(self) -> bool:
        return self._readonly

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc is not None:
            await self.rollback()
        elif not self._readonly and not self._committed:
            await self.commit()

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
