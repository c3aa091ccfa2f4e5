"""
Payments API routes.

Only the PIX payment-code generator lives here; keep this thin.
"""
from __future__ import annotations

from fastapi import APIRouter

from application.dtos.payments import PixCodeRequest, PixCodeResult
from core.logging_config import get_logger
from core.response import success_response
from domain.payment.pix_code import build_pix_payload


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.post("/pix-code", summary="Generate PIX copy-and-paste payload")
async def generate_pix_code(payload: PixCodeRequest):
    pix = build_pix_payload(payload.beneficiary_key, payload.beneficiary_name, payload.amount)
    logger.info("pix_code_generated", amount=pix.amount, crc=pix.crc)
    result = PixCodeResult(
        payload=pix.payload,
        amount=pix.amount,
        beneficiary_name=pix.beneficiary_name,
        crc=pix.crc,
    )
    return success_response(data=result.model_dump(), message="PIX payload generated")
