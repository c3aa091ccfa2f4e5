"""
API依赖项 - 应用服务装配
"""
from fastapi import Request

from application.ports.payment_gateway import PaymentGateway
from application.services.audit_log import AuditLog
from application.services.reconciliation_service import ReconciliationService
from application.services.signature_verifier import SignatureVerifier
from core.config import settings
from core.settings import payment_settings
from infrastructure.unit_of_work import sqlalchemy_uow_factory


async def get_payment_gateway(request: Request) -> PaymentGateway:
    """网关客户端在 lifespan 中创建一次，这里只取出共享实例"""
    return request.app.state.payment_gateway


async def get_audit_log() -> AuditLog:
    return AuditLog(uow_factory=sqlalchemy_uow_factory())


async def get_reconciliation_service(request: Request) -> ReconciliationService:
    uow_factory = sqlalchemy_uow_factory()
    return ReconciliationService(
        gateway=await get_payment_gateway(request),
        uow_factory=uow_factory,
        verifier=SignatureVerifier.from_settings(payment_settings.webhook),
        audit_log=AuditLog(uow_factory=uow_factory),
        fetch_timeout=payment_settings.timeouts.total,
        payload_max_bytes=settings.audit.payload_max_bytes,
    )
