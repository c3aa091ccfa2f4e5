import hashlib
import hmac

from application.services.signature_verifier import (
    SignatureOutcome,
    SignatureVerifier,
    canonical_body,
)
from core.settings import WebhookSettings


SECRET = "s3cret"
BODY = b'{"action":"payment.updated","data":{"id":"123"}}'


def _sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def test_valid_signature():
    check = SignatureVerifier(SECRET).verify(BODY, _sign(BODY))
    assert check.outcome == SignatureOutcome.VALID
    assert check.accepted


def test_prefixed_and_uppercase_signature_is_valid():
    check = SignatureVerifier(SECRET).verify(BODY, "sha256=" + _sign(BODY).upper())
    assert check.outcome == SignatureOutcome.VALID


def test_mismatched_signature_is_rejected():
    check = SignatureVerifier(SECRET).verify(BODY, _sign(BODY, "other"))
    assert check.outcome == SignatureOutcome.INVALID
    assert check.reason == "signature_mismatch"
    assert not check.accepted


def test_tampered_body_is_rejected():
    sig = _sign(BODY)
    check = SignatureVerifier(SECRET).verify(BODY.replace(b"123", b"124"), sig)
    assert not check.accepted


def test_malformed_signature_is_rejected():
    check = SignatureVerifier(SECRET).verify(BODY, "not-a-hex-digest")
    assert check.outcome == SignatureOutcome.INVALID
    assert check.reason == "malformed_signature"


def test_missing_header_is_tolerated_and_recorded():
    for header in (None, "", "   "):
        check = SignatureVerifier(SECRET).verify(BODY, header)
        assert check.outcome == SignatureOutcome.MISSING
        assert check.accepted


def test_provider_token_accepted_by_default():
    check = SignatureVerifier(SECRET).verify(BODY, "ts=1700000000,v1=abcdef")
    assert check.outcome == SignatureOutcome.PROVIDER_TOKEN
    assert check.accepted


def test_provider_token_can_be_disabled():
    check = SignatureVerifier(SECRET, accept_provider_tokens=False).verify(BODY, "ts=1700000000,v1=abcdef")
    assert check.outcome == SignatureOutcome.INVALID
    assert check.reason == "provider_token_not_accepted"


def test_no_secret_rejects_unless_unsigned_allowed():
    strict = SignatureVerifier(None).verify(BODY, _sign(BODY))
    assert strict.outcome == SignatureOutcome.INVALID
    assert strict.reason == "secret_not_configured"

    relaxed = SignatureVerifier("", allow_unsigned=True).verify(BODY, None)
    assert relaxed.outcome == SignatureOutcome.SKIPPED
    assert relaxed.accepted


def test_from_settings():
    cfg = WebhookSettings(secret=SECRET, accept_provider_tokens=False, provider_token_prefix="t=")
    verifier = SignatureVerifier.from_settings(cfg)
    assert verifier.verify(BODY, "t=1,v1=x").outcome == SignatureOutcome.INVALID
    assert verifier.verify(BODY, verifier.sign(BODY)).outcome == SignatureOutcome.VALID


def test_canonical_body_is_key_order_independent():
    assert canonical_body({"b": 1, "a": {"d": 2, "c": 3}}) == canonical_body({"a": {"c": 3, "d": 2}, "b": 1})
    assert canonical_body({"a": 1}) == b'{"a":1}'
