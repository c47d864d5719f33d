"""
PromptPay QR Payload Decoder
============================
Decodes the EMV-style Tag-Length-Value string carried by Thai PromptPay QR
codes into a QrPaymentInfo.

Payload grammar
---------------
  record  := tag(2 digits) length(2 digits) value(length chars)
  payload := record*

Tags 29 (Merchant Account Information) and 62 (Additional Data Field) hold
a nested stream with the same grammar.  Both levels go through iter_tlv();
what to pick out at each level is described by _PROMPTPAY_SCHEMA.

Decoding is all-or-nothing: one corrupted record anywhere (including inside
a nested template) and decode_promptpay() returns None.

Usage
-----
    info = decode_promptpay("00020101021129370016A000000677010111011300668123456785802TH...")
    info.merchant_id  # formatted identifier
"""

import re
from typing import Dict, Iterator, Optional, Tuple, Union

from loguru import logger

from slip_models import QrPaymentInfo


class TlvDecodeError(ValueError):
    """Raised by iter_tlv() when the stream is structurally inconsistent."""


_TWO_DIGITS = re.compile(r'[0-9]{2}')

# tag → attribute name, or tag → nested schema (sub-template)
Schema = Dict[str, Union[str, "Schema"]]

_PROMPTPAY_SCHEMA: Schema = {
    "29": {                       # Merchant Account Information
        "01": "merchant_id",
    },
    "54": "amount",               # Transaction Amount
    "62": {                       # Additional Data Field
        "01": "bill_payment_ref1",
        "02": "bill_payment_ref2",
        "05": "reference",
    },
}

# ─── Identifier templates (sub-tag 01 of tag 29) ──────────────────────────────

_CITIZEN_ID = re.compile(r'(\d{1})(\d{4})(\d{5})(\d{2})(\d{1})')
_PHONE      = re.compile(r'(\d{3})(\d{3})(\d{4})')


def iter_tlv(payload: str) -> Iterator[Tuple[str, str]]:
    """
    Yield (tag, value) for each record of a flat TLV stream, left to right.

    Raises
    ------
    TlvDecodeError
        truncated header, non-numeric tag/length, or a declared length that
        runs past the end of the string.
    """
    pos = 0
    end = len(payload)
    while pos < end:
        header = payload[pos:pos + 4]
        if len(header) < 4:
            raise TlvDecodeError(f"truncated record header at offset {pos}: {header!r}")

        tag, length_str = header[:2], header[2:]
        if not _TWO_DIGITS.fullmatch(tag):
            raise TlvDecodeError(f"non-numeric tag {tag!r} at offset {pos}")
        if not _TWO_DIGITS.fullmatch(length_str):
            raise TlvDecodeError(f"non-numeric length {length_str!r} for tag {tag}")

        start = pos + 4
        stop = start + int(length_str)
        if stop > end:
            raise TlvDecodeError(
                f"tag {tag} declares {length_str} chars but only {end - start} remain"
            )

        yield tag, payload[start:stop]
        pos = stop


def _collect(payload: str, schema: Schema, fields: Dict[str, str]) -> None:
    """Walk one TLV level, storing schema fields and descending into sub-templates."""
    for tag, value in iter_tlv(payload):
        target = schema.get(tag)
        if target is None:
            continue                    # unknown tag: skip
        if isinstance(target, dict):
            if value:
                _collect(value, target, fields)
        else:
            fields[target] = value      # repeated tag: last one wins


def format_identifier(identifier: str) -> str:
    """
    Normalize a PromptPay proxy identifier for display.

      15 chars, '00' prefix → citizen ID  D-DDDD-DDDDD-DD-D
      13 chars, '66' prefix → mobile      0DD-DDD-DDDD
      15 chars, '01' prefix → e-Wallet ID (prefix stripped)
      anything else         → unchanged
    """
    if len(identifier) == 15 and identifier.startswith("00"):
        citizen_id = identifier[2:]
        return _CITIZEN_ID.sub(r'\1-\2-\3-\4-\5', citizen_id, count=1)
    if len(identifier) == 13 and identifier.startswith("66"):
        phone = "0" + identifier[2:]
        return _PHONE.sub(r'\1-\2-\3', phone, count=1)
    if len(identifier) == 15 and identifier.startswith("01"):
        return identifier[2:]
    return identifier


def decode_promptpay(payload: str) -> Optional[QrPaymentInfo]:
    """
    Decode a raw PromptPay QR string.

    Returns None for an empty payload or a malformed TLV stream; a
    well-formed payload without tags 29/54/62 gives a QrPaymentInfo with
    empty fields.
    """
    if not isinstance(payload, str):
        raise TypeError(f"QR payload must be str, got {type(payload).__name__}")

    # parsed untrimmed: the last value may end in spaces
    if not payload.strip():
        return None

    fields: Dict[str, str] = {}
    try:
        _collect(payload, _PROMPTPAY_SCHEMA, fields)
    except TlvDecodeError as e:
        logger.debug(f"[PromptPay] Rejected payload ({len(payload)} chars): {e}")
        return None

    if "merchant_id" in fields:
        fields["merchant_id"] = format_identifier(fields["merchant_id"])

    info = QrPaymentInfo(**fields)
    logger.debug(
        f"[PromptPay] merchant={info.merchant_id!r} amount={info.amount!r} "
        f"reference={info.reference!r}"
    )
    return info
