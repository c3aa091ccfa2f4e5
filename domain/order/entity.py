"""
订单领域实体 - 订单聚合根（仅承载支付对账相关字段）

Orders are created by checkout elsewhere; this core only reconciles
payment outcomes onto them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class OrderStatus(str, Enum):
    """订单状态枚举"""
    PENDING = "pending"       # 待支付
    PAID = "paid"             # 已支付
    DELIVERED = "delivered"   # 已发货
    CANCELLED = "cancelled"   # 已取消


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class PaymentDetails:
    """Snapshot of the last reconciled payment. Replaced wholesale, never merged."""

    status_detail: Optional[str] = None
    payment_type_id: Optional[str] = None
    payment_method_id: Optional[str] = None
    transaction_amount: Optional[Decimal] = None
    installments: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status_detail": self.status_detail,
            "payment_type_id": self.payment_type_id,
            "payment_method_id": self.payment_method_id,
            "transaction_amount": (
                str(self.transaction_amount) if self.transaction_amount is not None else None
            ),
            "installments": self.installments,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> Optional["PaymentDetails"]:
        if not data:
            return None
        amount = data.get("transaction_amount")
        return cls(
            status_detail=data.get("status_detail"),
            payment_type_id=data.get("payment_type_id"),
            payment_method_id=data.get("payment_method_id"),
            transaction_amount=Decimal(str(amount)) if amount is not None else None,
            installments=data.get("installments"),
        )


@dataclass
class Order:
    """
    订单聚合根

    业务规则：
    1. status 由最近一次应用的 payment_status 决定，paid/cancelled 之后不再改变
    2. 对账不会创建订单，只更新已存在的订单
    """

    id: str
    status: OrderStatus = OrderStatus.PENDING
    payment_status: Optional[str] = None
    payment_external_id: Optional[str] = None
    payment_method: Optional[str] = None
    payment_details: Optional[PaymentDetails] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    payment_confirmed_at: Optional[datetime] = None

    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.payment_confirmed_at = _ensure_utc(self.payment_confirmed_at)
        if self.metadata is None:
            self.metadata = {}

    def is_terminal(self) -> bool:
        """paid/cancelled 对对账来说是终态（但同结果的重复通知仍会重写）"""
        return self.status in (OrderStatus.PAID, OrderStatus.CANCELLED)

    def accepts_status(self, new_status: OrderStatus) -> bool:
        """终态订单只接受相同状态的重写，不会被回退或改判"""
        return not self.is_terminal() or new_status == self.status


@dataclass(frozen=True)
class OrderPaymentUpdate:
    """Field group written in one atomic update by reconciliation."""

    status: OrderStatus
    payment_status: Optional[str]
    payment_external_id: str
    payment_method: Optional[str]
    payment_details: PaymentDetails
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def payment_confirmed_at(self) -> datetime:
        return self.updated_at
