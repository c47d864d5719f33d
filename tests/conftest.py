"""
Shared fixtures for slip reader tests
"""

import sys
from pathlib import Path

import pytest

# Add src and project root to path
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT / "src"))
sys.path.insert(0, str(ROOT))

PROMPTPAY_AID = "A000000677010111"


def tlv(tag: str, value: str) -> str:
    return f"{tag}{len(value):02d}{value}"


@pytest.fixture
def make_payload():
    """
    Build a PromptPay payload:
        make_payload(merchant="001234567890123", amount="1500.00", additional={"05": "REF"})
    """
    def _make(merchant=None, amount=None, additional=None, extra=""):
        parts = [tlv("00", "01"), tlv("01", "11")]
        if merchant is not None:
            parts.append(tlv("29", tlv("00", PROMPTPAY_AID) + tlv("01", merchant)))
        parts.append(tlv("53", "764"))
        if amount is not None:
            parts.append(tlv("54", amount))
        parts.append(tlv("58", "TH"))
        if additional:
            parts.append(tlv("62", "".join(tlv(k, v) for k, v in additional.items())))
        parts.append(extra)
        parts.append(tlv("63", "ABCD"))
        return "".join(parts)
    return _make


@pytest.fixture
def slip_text():
    """Typical OCR output of a Thai mobile-banking transfer slip"""
    return (
        "โอนเงินสำเร็จ\n"
        "15 Jan 2024, 14:30:25\n"
        "จาก นาย สมชาย ใจดี\n"
        "123-4-56789-0\n"
        "ไปยัง นางสาว สมหญิง รักดี\n"
        "987-6-54321-0\n"
        "จำนวนเงิน: 1,500.00 บาท\n"
        "ค่าธรรมเนียม: 0.00 บาท\n"
        "เลขที่อ้างอิง: 2024011514302512345\n"
    )
