"""
Audit log application facade.

Each append runs in its own short transaction so an audit failure can never
roll back (or block) an order update. Failures are logged and swallowed.
"""
from __future__ import annotations

from typing import Callable, List, Optional

from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.webhook.entity import AuditEntry


logger = get_logger(__name__)


class AuditLog:
    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def record(self, entry: AuditEntry) -> Optional[AuditEntry]:
        try:
            async with self._uow_factory() as uow:
                saved = await uow.webhook_log_repository.append(entry)
        except Exception as exc:
            logger.error(
                "audit_append_failed",
                outcome=entry.outcome.value,
                event_kind=entry.event_kind,
                payment_id=entry.external_payment_id,
                order_id=entry.order_id,
                error=str(exc),
                exc_info=True,
            )
            return None
        logger.info(
            "audit_recorded",
            audit_id=saved.id,
            outcome=saved.outcome.value,
            payment_id=saved.external_payment_id,
            order_id=saved.order_id,
        )
        return saved

    async def recent(self, limit: int = 20) -> List[AuditEntry]:
        async with self._uow_factory(readonly=True) as uow:
            return await uow.webhook_log_repository.list_recent(limit)
