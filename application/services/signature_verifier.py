"""
Webhook signature verification (HMAC-SHA256 over the request body).

The verifier never raises; it returns a SignatureCheck whose `accepted`
flag decides whether reconciliation may proceed. The HTTP response does not
depend on it.
"""
from __future__ import annotations

import hashlib
import hmac
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from core.logging_config import get_logger
from core.settings import WebhookSettings


logger = get_logger(__name__)

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


class SignatureOutcome(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    MISSING = "missing"              # header absent: tolerated, recorded
    SKIPPED = "skipped"              # no secret and unsigned mode explicitly allowed
    PROVIDER_TOKEN = "provider_token"  # provider's prefixed token format


@dataclass(frozen=True)
class SignatureCheck:
    outcome: SignatureOutcome
    reason: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.outcome != SignatureOutcome.INVALID


def canonical_body(payload: Any) -> bytes:
    """Deterministic JSON serialization for payloads that arrive already decoded."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


class SignatureVerifier:
    def __init__(
        self,
        secret: Optional[str],
        *,
        allow_unsigned: bool = False,
        accept_provider_tokens: bool = True,
        provider_token_prefix: str = "ts=",
    ) -> None:
        self._secret = secret or None
        self._allow_unsigned = allow_unsigned
        self._accept_provider_tokens = accept_provider_tokens
        self._provider_token_prefix = provider_token_prefix

    @classmethod
    def from_settings(cls, cfg: WebhookSettings) -> "SignatureVerifier":
        return cls(
            cfg.secret,
            allow_unsigned=cfg.allow_unsigned,
            accept_provider_tokens=cfg.accept_provider_tokens,
            provider_token_prefix=cfg.provider_token_prefix,
        )

    def sign(self, body: bytes) -> str:
        if not self._secret:
            raise RuntimeError("webhook secret not configured")
        return hmac.new(self._secret.encode("utf-8"), body, hashlib.sha256).hexdigest()

    def verify(self, body: bytes, signature: Optional[str]) -> SignatureCheck:
        if not self._secret:
            if self._allow_unsigned:
                logger.warning("webhook_signature_skipped", reason="secret_not_configured")
                return SignatureCheck(SignatureOutcome.SKIPPED, "secret_not_configured")
            logger.error("webhook_signature_unverifiable", reason="secret_not_configured")
            return SignatureCheck(SignatureOutcome.INVALID, "secret_not_configured")

        sig = (signature or "").strip()
        if not sig:
            logger.warning("webhook_signature_missing")
            return SignatureCheck(SignatureOutcome.MISSING, "header_absent")

        if self._provider_token_prefix and sig.startswith(self._provider_token_prefix):
            if self._accept_provider_tokens:
                logger.info("webhook_signature_provider_token")
                return SignatureCheck(SignatureOutcome.PROVIDER_TOKEN, "prefixed_token")
            return SignatureCheck(SignatureOutcome.INVALID, "provider_token_not_accepted")

        if sig.lower().startswith("sha256="):
            sig = sig[len("sha256="):]
        if len(sig) != 64 or not set(sig) <= _HEX_DIGITS:
            logger.warning("webhook_signature_malformed", length=len(sig))
            return SignatureCheck(SignatureOutcome.INVALID, "malformed_signature")

        expected = self.sign(body)
        if hmac.compare_digest(expected, sig.lower()):
            return SignatureCheck(SignatureOutcome.VALID)
        logger.warning("webhook_signature_invalid")
        return SignatureCheck(SignatureOutcome.INVALID, "signature_mismatch")
