"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings; everything the reconciliation core
reads about the gateway and webhook trust lives here.
"""
from __future__ import annotations

from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field


class PaymentTimeouts(BaseModel):
    connect: float = 1.0
    read: float = 3.0
    write: float = 3.0
    total: float = 5.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    # Shared HMAC secret; None means signatures cannot be checked
    secret: Optional[str] = None
    # Explicit opt-in to accept notifications when no secret is configured (local dev)
    allow_unsigned: bool = False
    # Mercado Pago's "ts=...,v1=..." header is accepted without HMAC comparison
    accept_provider_tokens: bool = True
    provider_token_prefix: str = "ts="
    signature_header: str = "X-Signature"


class MercadoPagoSettings(BaseModel):
    access_token: Optional[str] = None
    base_url: str = "https://api.mercadopago.com"


class PaymentSettings(BaseSettings):
    default_provider: str = Field(default="mercadopago", validation_alias="PAYMENT__DEFAULT_PROVIDER")
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)

    mercadopago: MercadoPagoSettings = Field(default_factory=MercadoPagoSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="PAYMENT__",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
