"""
Webhook audit log repository interface (append-only).
"""
from abc import ABC, abstractmethod
from typing import List

from .entity import AuditEntry


class AuditLogRepository(ABC):
    """审计日志仓储：只追加，不提供更新或删除"""

    @abstractmethod
    async def append(self, entry: AuditEntry) -> AuditEntry:
        """追加一条审计记录，返回带ID的记录"""
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 20) -> List[AuditEntry]:
        """按时间倒序返回最近的审计记录"""
        pass
