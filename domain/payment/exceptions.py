"""
Reconciliation error taxonomy.

Every one of these is caught by the reconciliation service, recorded in the
audit log and acknowledged with HTTP 200; none escapes the webhook handler.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


class ReconciliationError(BusinessException):
    """Base for failures that stop reconciliation of a single notification."""

    reason: str = "reconciliation_error"

    def __init__(self, message: str, *, code: int, details: Optional[dict] = None):
        super().__init__(
            code=code,
            message=message,
            error_type=type(self).__name__,
            details=details,
        )


class MalformedNotification(ReconciliationError):
    reason = "malformed_notification"

    def __init__(self, message: str = "Unrecognized notification shape", *, details: Optional[dict] = None):
        super().__init__(message, code=PaymentCode.MALFORMED_NOTIFICATION, details=details)


class AuthenticationFailure(ReconciliationError):
    reason = "auth_failure"

    def __init__(self, message: str = "Invalid webhook signature", *, details: Optional[dict] = None):
        super().__init__(message, code=PaymentCode.SIGNATURE_ERROR, details=details)


class UpstreamFetchFailure(ReconciliationError):
    reason = "upstream_fetch_failure"

    def __init__(self, payment_id: str, message: str, *, details: Optional[dict] = None):
        full_details = {"payment_id": payment_id}
        if details:
            full_details.update(details)
        super().__init__(message, code=PaymentCode.PROVIDER_ERROR, details=full_details)
        self.payment_id = payment_id


class ReferenceMissing(ReconciliationError):
    reason = "reference_missing"

    def __init__(self, payment_id: str):
        super().__init__(
            "Order reference not found in payment details",
            code=PaymentCode.REFERENCE_MISSING,
            details={"payment_id": payment_id},
        )
        self.payment_id = payment_id


class OrderNotFound(ReconciliationError):
    reason = "order_not_found"

    def __init__(self, order_id: str):
        super().__init__(
            f"Order {order_id} not found",
            code=PaymentCode.ORDER_NOT_FOUND,
            details={"order_id": order_id},
        )
        self.order_id = order_id


class StoreWriteFailure(ReconciliationError):
    reason = "store_write_failure"

    def __init__(self, order_id: str, message: str):
        super().__init__(
            message,
            code=PaymentCode.STORE_WRITE_FAILED,
            details={"order_id": order_id},
        )
        self.order_id = order_id
