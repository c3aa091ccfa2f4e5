"""
Webhook 审计日志仓储实现（SQLAlchemy，只追加）
"""
from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.webhook.entity import AuditEntry, AuditOutcome
from domain.webhook.repository import AuditLogRepository
from infrastructure.models.webhook_log import WebhookLogModel


class SQLAlchemyWebhookLogRepository(AuditLogRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: WebhookLogModel) -> AuditEntry:
        return AuditEntry(
            id=model.id,
            timestamp=model.timestamp,
            event_kind=model.event_kind,
            external_payment_id=model.external_payment_id,
            outcome=AuditOutcome(model.outcome),
            order_id=model.order_id,
            detected_format=model.detected_format,
            request_id=model.request_id,
            detail=model.detail or {},
        )

    async def append(self, entry: AuditEntry) -> AuditEntry:
        db_entry = WebhookLogModel(
            timestamp=entry.timestamp,
            event_kind=entry.event_kind,
            external_payment_id=entry.external_payment_id,
            outcome=entry.outcome.value,
            order_id=entry.order_id,
            detected_format=entry.detected_format,
            request_id=entry.request_id,
            detail=entry.detail,
        )
        self.session.add(db_entry)
        await self.session.flush()
        await self.session.refresh(db_entry)
        return self._to_entity(db_entry)

    async def list_recent(self, limit: int = 20) -> List[AuditEntry]:
        result = await self.session.execute(
            select(WebhookLogModel)
            .order_by(WebhookLogModel.timestamp.desc(), WebhookLogModel.id.desc())
            .limit(limit)
        )
        return [self._to_entity(m) for m in result.scalars().all()]
