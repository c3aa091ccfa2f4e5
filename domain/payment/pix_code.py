"""
PIX "copia e cola" payload codec.

Builds the EMV-style tag/length/value string rendered as a scan-to-pay QR
code. Pure and deterministic: the same inputs always yield the same bytes,
so the QR renderer and the copyable string always agree.
"""
from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_CEILING
from typing import Any

from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


PIX_GUI = "BR.GOV.BCB.PIX"

TAG_PAYLOAD_FORMAT = "00"
TAG_MERCHANT_ACCOUNT = "26"
TAG_MAI_GUI = "00"
TAG_MAI_KEY = "01"
TAG_CATEGORY_CODE = "52"
TAG_CURRENCY = "53"
TAG_AMOUNT = "54"
TAG_COUNTRY = "58"
TAG_MERCHANT_NAME = "59"
TAG_CRC = "63"

PAYLOAD_FORMAT = "01"
CATEGORY_CODE = "0000"
CURRENCY_BRL = "986"
COUNTRY_BR = "BR"

MAX_AMOUNT_DIGITS = 96

CRC_POLY = 0x1021
CRC_INIT = 0xFFFF

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


class PixPayloadError(BusinessException):
    def __init__(self, message: str, *, field: str | None = None):
        super().__init__(
            code=PaymentCode.PIX_PAYLOAD_INVALID,
            message=message,
            error_type="PixPayloadError",
            field=field,
        )


@dataclass(frozen=True)
class PixPayload:
    beneficiary_key: str
    beneficiary_name: str
    amount: str
    payload: str

    @property
    def crc(self) -> str:
        return self.payload[-4:]

    def __str__(self) -> str:
        return self.payload


def normalize_beneficiary_name(name: Any) -> str:
    """Strip diacritics, then drop everything outside [A-Za-z0-9]."""
    decomposed = unicodedata.normalize("NFD", str(name or ""))
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _NON_ALNUM.sub("", without_marks)


def normalize_amount(amount: Any) -> str:
    """Round up to a whole unit and render with two decimals; garbage → "0.00".

    Numeric amounts must be positive and small enough to fit the amount field.
    """
    try:
        value = Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return "0.00"
    if not value.is_finite():
        return "0.00"
    if value <= 0:
        raise PixPayloadError("Amount must be greater than zero", field="amount")
    # 字段值最长 99 位，含 ".00" 后整数部分最多 96 位
    if value.adjusted() >= MAX_AMOUNT_DIGITS:
        raise PixPayloadError("Amount is too large", field="amount")
    whole = value.to_integral_value(rounding=ROUND_CEILING)
    return f"{int(whole)}.00"


def tlv(tag: str, value: str) -> str:
    """Serialize one field as tag(2) + zero-padded length(2) + value."""
    if len(value) > 99:
        raise PixPayloadError(f"Field {tag} exceeds 99 characters", field=tag)
    return f"{tag}{len(value):02d}{value}"


def crc16_ccitt(data: str) -> str:
    """CRC-16/CCITT-FALSE over the low byte of each character, as 4 hex digits."""
    crc = CRC_INIT
    for ch in data:
        crc ^= (ord(ch) & 0xFF) << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ CRC_POLY) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def build_pix_payload(beneficiary_key: str, beneficiary_name: Any, amount: Any) -> PixPayload:
    key = (beneficiary_key or "").strip()
    if not key:
        raise PixPayloadError("PIX key is not configured", field="beneficiary_key")

    name = normalize_beneficiary_name(beneficiary_name)
    value = normalize_amount(amount)

    merchant_account = tlv(TAG_MAI_GUI, PIX_GUI) + tlv(TAG_MAI_KEY, key)
    body = "".join(
        (
            tlv(TAG_PAYLOAD_FORMAT, PAYLOAD_FORMAT),
            tlv(TAG_MERCHANT_ACCOUNT, merchant_account),
            tlv(TAG_CATEGORY_CODE, CATEGORY_CODE),
            tlv(TAG_CURRENCY, CURRENCY_BRL),
            tlv(TAG_AMOUNT, value),
            tlv(TAG_COUNTRY, COUNTRY_BR),
            tlv(TAG_MERCHANT_NAME, name),
            TAG_CRC + "04",
        )
    )
    return PixPayload(
        beneficiary_key=key,
        beneficiary_name=name,
        amount=value,
        payload=body + crc16_ccitt(body),
    )
