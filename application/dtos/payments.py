"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.order.entity import PaymentDetails


class GatewayPayment(BaseModel):
    """Authoritative payment snapshot fetched from the gateway by id."""

    id: str
    status: Optional[str] = None
    status_detail: Optional[str] = None
    payment_type_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    transaction_amount: Optional[Decimal] = None
    installments: Optional[int] = None
    external_reference: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        if v is None:
            return v
        if isinstance(v, float) and v.is_integer():
            v = int(v)
        return str(v)

    @field_validator("external_reference", mode="before")
    @classmethod
    def _blank_reference_is_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        s = str(v).strip()
        return s or None

    def to_details(self) -> PaymentDetails:
        return PaymentDetails(
            status_detail=self.status_detail,
            payment_type_id=self.payment_type_id,
            payment_method_id=self.payment_method_id,
            transaction_amount=self.transaction_amount,
            installments=self.installments,
        )


class PixCodeRequest(BaseModel):
    beneficiary_key: str = Field(min_length=1, max_length=77)
    beneficiary_name: str = Field(default="", max_length=200)
    # Free-form: unparseable amounts render as 0.00, numeric ones must be positive
    amount: str | float | int


class PixCodeResult(BaseModel):
    payload: str
    amount: str
    beneficiary_name: str
    crc: str


class AuditEntryOut(BaseModel):
    id: Optional[int] = None
    timestamp: str
    event_kind: str
    external_payment_id: str
    outcome: str
    order_id: Optional[str] = None
    detected_format: Optional[str] = None
    request_id: Optional[str] = None
    detail: dict[str, Any] = Field(default_factory=dict)
