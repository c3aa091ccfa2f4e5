"""
Payment specific codes and the gateway status → order status table.

`GATEWAY_STATUS_TO_ORDER_STATUS` is the only place the mapping lives; every
caller goes through `map_gateway_status`.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Optional

from domain.order.entity import OrderStatus


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    SIGNATURE_ERROR = 60002
    TIMEOUT = 60003

    # Reconciliation errors (61xxx)
    MALFORMED_NOTIFICATION = 61000
    REFERENCE_MISSING = 61001
    ORDER_NOT_FOUND = 61002
    STORE_WRITE_FAILED = 61003

    # Payment code generation (62xxx)
    PIX_PAYLOAD_INVALID = 62000


# Mercado Pago payment.status → local order status
GATEWAY_STATUS_TO_ORDER_STATUS: dict[str, OrderStatus] = {
    "approved": OrderStatus.PAID,
    "pending": OrderStatus.PENDING,
    "in_process": OrderStatus.PENDING,
    "in_mediation": OrderStatus.PENDING,
    "authorized": OrderStatus.PENDING,
    "rejected": OrderStatus.CANCELLED,
    "cancelled": OrderStatus.CANCELLED,
    "refunded": OrderStatus.CANCELLED,
    "charged_back": OrderStatus.CANCELLED,
}


def map_gateway_status(status: Optional[str]) -> OrderStatus:
    """Map a gateway payment status to the order status. Total: unknown → pending."""
    if not isinstance(status, str):
        return OrderStatus.PENDING
    return GATEWAY_STATUS_TO_ORDER_STATUS.get(status.strip(), OrderStatus.PENDING)
