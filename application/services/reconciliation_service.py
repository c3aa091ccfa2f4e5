"""
Application service reconciling gateway payment notifications onto orders.

Flow per notification:

    verify signature → normalize → fetch payment from gateway (bounded)
    → resolve order via external_reference → map status → atomic order write
    → exactly one audit entry

The notification body is only a trigger; the gateway's payment record is
the source of truth, and every write re-derives the full payment field
group from it. Redeliveries therefore converge on the same final state
without locks. Paid and cancelled orders are final: a later gateway status
that maps elsewhere is audited but not written. Nothing raises past
`handle_notification`.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional

from application.dtos.payments import GatewayPayment
from application.ports.payment_gateway import PaymentGateway
from application.services.audit_log import AuditLog
from application.services.notification_normalizer import is_payment_event, normalize_notification
from application.services.signature_verifier import SignatureCheck, SignatureVerifier, canonical_body
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, OrderPaymentUpdate
from domain.payment.exceptions import (
    AuthenticationFailure,
    OrderNotFound,
    ReconciliationError,
    ReferenceMissing,
    StoreWriteFailure,
    UpstreamFetchFailure,
)
from domain.webhook.entity import AuditEntry, AuditOutcome, Notification
from shared.codes.payment_codes import map_gateway_status


logger = get_logger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    outcome: AuditOutcome
    message: str
    order_id: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    error: Optional[str] = None
    detail: dict = field(default_factory=dict)


class ReconciliationService:
    def __init__(
        self,
        gateway: PaymentGateway,
        uow_factory: Callable[..., AbstractUnitOfWork],
        verifier: SignatureVerifier,
        *,
        audit_log: Optional[AuditLog] = None,
        fetch_timeout: float = 5.0,
        payload_max_bytes: int = 8192,
    ) -> None:
        self._gateway = gateway
        self._uow_factory = uow_factory
        self._verifier = verifier
        self._audit = audit_log or AuditLog(uow_factory)
        self._fetch_timeout = fetch_timeout
        self._payload_max_bytes = payload_max_bytes

    async def handle_notification(
        self,
        payload: Any,
        *,
        raw_body: Optional[bytes] = None,
        signature: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        request_id: Optional[str] = None,
    ) -> ReconciliationResult:
        notification = normalize_notification(payload, headers)
        logger.info(
            "webhook_received",
            format=notification.detected_format.value,
            event_kind=notification.event_kind,
            payment_id=notification.external_payment_id,
        )

        body = raw_body if raw_body is not None else canonical_body(payload)
        check = self._verifier.verify(body, signature)

        try:
            if not check.accepted:
                raise AuthenticationFailure(details={"reason": check.reason})
            result = await self._reconcile(notification)
        except ReconciliationError as exc:
            result = self._failed(exc)
        except Exception as exc:
            logger.error(
                "webhook_processing_failed",
                payment_id=notification.external_payment_id,
                error=str(exc),
                exc_info=True,
            )
            result = ReconciliationResult(
                outcome=AuditOutcome.ERROR,
                message="Internal error while processing webhook",
                error="internal_error",
                detail={"error": "internal_error", "message": str(exc)},
            )

        await self._audit.record(self._audit_entry(notification, result, check, body, request_id))
        return result

    async def _reconcile(self, notification: Notification) -> ReconciliationResult:
        if not is_payment_event(notification):
            logger.info(
                "webhook_ignored",
                format=notification.detected_format.value,
                event_kind=notification.event_kind,
            )
            return ReconciliationResult(
                outcome=AuditOutcome.INFO,
                message="Webhook ignored: not a payment notification",
                detail={"message": "ignored", "format": notification.detected_format.value},
            )

        payment = await self._fetch_payment(notification.external_payment_id)
        order_id = payment.external_reference
        if not order_id:
            raise ReferenceMissing(payment.id)

        new_status = map_gateway_status(payment.status)
        update = OrderPaymentUpdate(
            status=new_status,
            payment_status=payment.status,
            payment_external_id=payment.id,
            payment_method=payment.payment_method_id,
            payment_details=payment.to_details(),
        )
        order, written = await self._apply(order_id, update)

        if not written:
            logger.warning(
                "order_terminal_state_kept",
                order_id=order_id,
                payment_id=payment.id,
                order_status=order.status.value,
                rejected_status=new_status.value,
                payment_status=payment.status,
            )
            return ReconciliationResult(
                outcome=AuditOutcome.INFO,
                message="Webhook processed: order already final",
                order_id=order_id,
                old_status=order.status.value,
                new_status=order.status.value,
                detail={
                    "message": "terminal_state_kept",
                    "old_status": order.status.value,
                    "rejected_status": new_status.value,
                    "old_payment_status": order.payment_status,
                    "gateway_payment_status": payment.status,
                    "changed": False,
                },
            )

        changed = order.status != new_status or order.payment_status != payment.status
        logger.info(
            "order_payment_applied",
            order_id=order_id,
            payment_id=payment.id,
            old_status=order.status.value,
            new_status=new_status.value,
            payment_status=payment.status,
            changed=changed,
        )
        return ReconciliationResult(
            outcome=AuditOutcome.SUCCESS,
            message="Webhook processed successfully",
            order_id=order_id,
            old_status=order.status.value,
            new_status=new_status.value,
            detail={
                "old_status": order.status.value,
                "new_status": new_status.value,
                "old_payment_status": order.payment_status,
                "new_payment_status": payment.status,
                "changed": changed,
            },
        )

    async def _fetch_payment(self, payment_id: str) -> GatewayPayment:
        try:
            return await asyncio.wait_for(self._gateway.get_payment(payment_id), timeout=self._fetch_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("payment_fetch_timeout", payment_id=payment_id, timeout=self._fetch_timeout)
            raise UpstreamFetchFailure(
                payment_id, "Timed out fetching payment", details={"timeout": self._fetch_timeout}
            ) from exc
        except Exception as exc:
            logger.error("payment_fetch_failed", payment_id=payment_id, error=str(exc))
            raise UpstreamFetchFailure(
                payment_id,
                str(exc) or type(exc).__name__,
                details={"error_type": type(exc).__name__},
            ) from exc

    async def _apply(self, order_id: str, update: OrderPaymentUpdate) -> tuple[Order, bool]:
        """Load the order (for the audit's before-state) and write the field group.

        Returns the order as loaded and whether the write happened; a paid or
        cancelled order is left alone when the gateway reports another status.
        """
        try:
            async with self._uow_factory() as uow:
                order = await uow.order_repository.get_by_id(order_id)
                if order is None:
                    raise OrderNotFound(order_id)
                if not order.accepts_status(update.status):
                    return order, False
                if not await uow.order_repository.apply_payment(order_id, update):
                    raise OrderNotFound(order_id)
                return order, True
        except ReconciliationError:
            raise
        except Exception as exc:
            logger.error("order_update_failed", order_id=order_id, error=str(exc), exc_info=True)
            raise StoreWriteFailure(order_id, str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _failed(exc: ReconciliationError) -> ReconciliationResult:
        order_id = getattr(exc, "order_id", None)
        logger.warning("webhook_reconciliation_failed", reason=exc.reason, order_id=order_id, error=exc.message)
        return ReconciliationResult(
            outcome=AuditOutcome.ERROR,
            message=exc.message,
            order_id=order_id,
            error=exc.reason,
            detail={"error": exc.reason, "message": exc.message, **(exc.details or {})},
        )

    def _audit_entry(
        self,
        notification: Notification,
        result: ReconciliationResult,
        check: SignatureCheck,
        body: bytes,
        request_id: Optional[str],
    ) -> AuditEntry:
        detail = dict(result.detail)
        detail["signature"] = check.outcome.value
        # 原始请求体按上限截断后保存，供排查与重放
        limit = self._payload_max_bytes
        detail["payload"] = body[:limit].decode("utf-8", errors="replace")
        detail["payload_truncated"] = len(body) > limit
        return AuditEntry.for_notification(
            notification,
            result.outcome,
            detail=detail,
            order_id=result.order_id,
            request_id=request_id,
        )
