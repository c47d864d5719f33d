"""
Result Merger
Combines the QR and OCR sides of one slip into a SlipRecord.

No reconciliation happens here: if QR and OCR disagree on the amount, both
values are surfaced as-is.
"""

import json
from datetime import datetime, timezone
from typing import Optional

from slip_models import OcrSlipInfo, QrPaymentInfo, SlipData, SlipRecord


def iso_timestamp(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a 'Z' suffix (2024-01-15T07:30:00.000Z)."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def merge(
    qr: Optional[QrPaymentInfo],
    ocr: Optional[OcrSlipInfo],
    now: Optional[datetime] = None,
) -> SlipRecord:
    """
    Build the merged record.

    success is True iff at least one side is present.  `now` defaults to the
    current UTC time; naive datetimes are read as UTC.
    """
    if now is None:
        now = datetime.now(timezone.utc)

    return SlipRecord(
        slip_data=SlipData(ocr_data=ocr, qr_data=qr),
        timestamp=iso_timestamp(now),
        success=qr is not None or ocr is not None,
    )


def to_json(record: SlipRecord, indent: Optional[int] = 2) -> str:
    """Render the export document; Thai text is kept unescaped."""
    return json.dumps(record.to_document(), ensure_ascii=False, indent=indent)
