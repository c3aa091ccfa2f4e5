"""
Mercado Pago payments adapter over the REST API (httpx).

Only the read side is used: `GET /v1/payments/{id}` with a Bearer access
token returns the authoritative payment record the reconciler trusts.
"""
from __future__ import annotations

from typing import Any, Optional

import httpx
from pydantic import ValidationError

from application.dtos.payments import GatewayPayment
from core.settings import PaymentSettings, payment_settings
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    PaymentProviderError,
    PaymentRecoverableError,
)


class MercadoPagoClient(BasePaymentClient):
    provider = "mercadopago"

    def __init__(
        self,
        cfg: Optional[PaymentSettings] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        cfg = cfg or payment_settings
        super().__init__(
            base_url=cfg.mercadopago.base_url,
            timeouts=cfg.timeouts.model_dump(),
            retry={"max": cfg.retry.max, "base": cfg.retry.base_backoff},
            transport=transport,
        )
        if not cfg.mercadopago.access_token:
            raise RuntimeError("PAYMENT__MERCADOPAGO__ACCESS_TOKEN not configured")
        self._access_token = cfg.mercadopago.access_token

    def _default_headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "Authorization": f"Bearer {self._access_token}",
        }

    async def get_payment(self, payment_id: str) -> GatewayPayment:  # type: ignore[override]
        path = f"/v1/payments/{payment_id}"

        async def _do() -> httpx.Response:
            async with self.client() as c:
                return await c.get(path)

        try:
            resp = await self._retry(_do)
        except (httpx.TimeoutException, httpx.TransportError) as e:
            self._log("payment_fetch_transport_error", payment_id=payment_id, error=str(e))
            raise PaymentRecoverableError(
                f"Mercado Pago unreachable: {e}", provider=self.provider
            ) from e

        if resp.status_code >= 500:
            self._log("payment_fetch_upstream_error", payment_id=payment_id, status_code=resp.status_code)
            raise PaymentRecoverableError(
                f"Mercado Pago returned {resp.status_code}",
                provider=self.provider,
                status_code=resp.status_code,
            )
        if resp.status_code >= 400:
            body = self._safe_json(resp)
            self._log("payment_fetch_rejected", payment_id=payment_id, status_code=resp.status_code)
            raise PaymentProviderError(
                str(body.get("message") or f"Mercado Pago returned {resp.status_code}"),
                provider=self.provider,
                provider_code=body.get("error"),
                status_code=resp.status_code,
            )

        body = self._safe_json(resp)
        try:
            payment = GatewayPayment.model_validate(body)
        except ValidationError as e:
            raise PaymentProviderError(
                "Unexpected payment payload from Mercado Pago",
                provider=self.provider,
                details={"errors": e.errors(include_url=False)},
            ) from e

        self._log(
            "payment_fetched",
            payment_id=payment.id,
            status=payment.status,
            external_reference=payment.external_reference,
        )
        return payment

    @staticmethod
    def _safe_json(resp: httpx.Response) -> dict[str, Any]:
        try:
            data = resp.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
