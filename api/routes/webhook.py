"""
Webhook API routes.

The gateway only needs to know the notification arrived: every branch of
`POST /webhook` acknowledges with HTTP 200 and a small JSON body, and the
outcome of reconciliation is recorded in the audit log instead.
"""
from __future__ import annotations

import json

from fastapi import APIRouter, Depends, Query, Request

from api.dependencies import get_audit_log, get_reconciliation_service
from application.dtos.payments import AuditEntryOut
from application.services.audit_log import AuditLog
from application.services.reconciliation_service import ReconciliationService
from core.config import settings
from core.logging_config import get_logger
from core.response import WebhookAck, success_response, utc_isoformat
from core.settings import payment_settings


router = APIRouter(prefix="/webhook", tags=["Webhook"])
logger = get_logger(__name__)


@router.post("", summary="Receive payment notification", response_model=WebhookAck)
async def receive_notification(
    request: Request,
    service: ReconciliationService = Depends(get_reconciliation_service),
) -> WebhookAck:
    raw_body = await request.body()
    try:
        payload = json.loads(raw_body) if raw_body else None
    except (ValueError, RecursionError):
        # 非法或嵌套过深的 JSON 仍需应答 200，按未知格式记录
        payload = None

    signature = request.headers.get(payment_settings.webhook.signature_header)
    request_id = getattr(request.state, "request_id", None)

    try:
        result = await service.handle_notification(
            payload,
            raw_body=raw_body,
            signature=signature,
            headers=dict(request.headers),
            request_id=request_id,
        )
    except Exception as exc:
        logger.error("webhook_handler_crashed", error=str(exc), exc_info=True)
        return WebhookAck(message="Internal error while processing webhook", error="internal_error")

    return WebhookAck(message=result.message, error=result.error)


@router.get("/logs", summary="Recent webhook audit entries")
async def recent_logs(
    limit: int = Query(default=settings.audit.default_limit, ge=1, le=settings.audit.max_limit),
    audit_log: AuditLog = Depends(get_audit_log),
):
    entries = await audit_log.recent(limit)
    data = [
        AuditEntryOut(
            id=e.id,
            timestamp=utc_isoformat(e.timestamp),
            event_kind=e.event_kind,
            external_payment_id=e.external_payment_id,
            outcome=e.outcome.value,
            order_id=e.order_id,
            detected_format=e.detected_format,
            request_id=e.request_id,
            detail=e.detail,
        ).model_dump(mode="json")
        for e in entries
    ]
    return success_response(data=data, message="Recent webhook logs")
