"""
Payment gateway port.

The reconciliation service depends on this Protocol only; the Mercado Pago
adapter in infrastructure implements it, and tests substitute fakes.
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from application.dtos.payments import GatewayPayment


@runtime_checkable
class PaymentGateway(Protocol):
    provider: str

    async def get_payment(self, payment_id: str) -> GatewayPayment:
        """Fetch the authoritative payment record by gateway id.

        Raises PaymentProviderError / PaymentRecoverableError on failure.
        """
        ...

    async def aclose(self) -> None: ...
