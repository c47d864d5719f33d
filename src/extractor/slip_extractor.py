"""
Slip Text Extractor
===================
Recovers payment fields from the raw OCR text of a Thai bank-transfer slip:

  - amount, fee          (matched on the cleaned text)
  - date, time           (raw text, separators matter)
  - reference            (raw text)
  - from/to account      (raw text, positional)
  - transfer type        (substring check)

Every field has a ranked list of matchers; the first one that matches AND
validates wins.  Missing fields stay None and extract() never fails as a whole.

Character classes use ASCII semantics (re.ASCII), so Thai letters count as
non-word characters for \\b and are not digits for \\d.
"""

import re
from typing import List, Optional, Tuple

from loguru import logger

from extractor.matchers import (
    PatternMatcher,
    first_match,
    length_between,
    number_in_range,
    strip_commas,
    value_of,
)
from slip_models import OcrSlipInfo


# ─── Limits ───────────────────────────────────────────────────────────────────

AMOUNT_RANGE    = (0.01, 10_000_000.0)
FEE_RANGE       = (0.0, 1_000.0)
REFERENCE_LEN   = (10, 50)

PROMPTPAY_LABEL = "PromptPay"
TRANSFER_LABEL  = "โอนเงิน"

_A  = re.ASCII
_AI = re.ASCII | re.IGNORECASE

# Unicode whitespace (NBSP, thin space) inside ASCII-mode patterns
_S = r'(?u:\s)'

# ─── Text cleaning ────────────────────────────────────────────────────────────

# keep: Thai block, ASCII letters/digits, whitespace, . , : - / ( ) ฿
_NOISE      = re.compile(r'[^\u0E00-\u0E7Fa-zA-Z0-9\s.,:\-/()฿]')
_WHITESPACE = re.compile(r'\s+')

# ─── Shared tokens ────────────────────────────────────────────────────────────

_AMOUNT = r'([0-9]{1,3}(?:,?[0-9]{3})*\.[0-9]{2})'
_FEE    = r'([0-9]+(?:\.[0-9]{2})?)'
_MONTHS = r'(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)'


def _amount_matcher(name: str, pattern: str, flags: int = _A) -> PatternMatcher:
    return PatternMatcher(
        name,
        re.compile(pattern, flags),
        transform=strip_commas,
        validator=number_in_range(*AMOUNT_RANGE),
    )


def _fee_matcher(name: str, pattern: str) -> PatternMatcher:
    return PatternMatcher(
        name,
        re.compile(pattern, _AI),
        transform=strip_commas,
        validator=number_in_range(*FEE_RANGE),
    )


def _reference_matcher(name: str, pattern: str, flags: int) -> PatternMatcher:
    return PatternMatcher(
        name,
        re.compile(pattern, flags),
        transform=str.strip,
        validator=length_between(*REFERENCE_LEN),
    )


# ─── Ranked matcher lists ─────────────────────────────────────────────────────

AMOUNT_MATCHERS = [
    _amount_matcher("amount_th_label", r'(?:จำนวนเงิน|จ่าย|ยอดเงิน|โอน)[:\s]+' + _AMOUNT, _AI),
    _amount_matcher("amount_en_label", r'(?:Amount|Total|Pay)[:\s]+' + _AMOUNT, _AI),
    _amount_matcher("amount_thb",      r'THB[:\s]+' + _AMOUNT, _AI),
    _amount_matcher("amount_baht_sign", r'฿[:\s]*' + _AMOUNT),
    _amount_matcher("amount_unit",     _AMOUNT + r'\s*(?:บาท|Baht)', _AI),
    _amount_matcher("amount_bare",     r'\b([1-9][0-9]{0,2}(?:,?[0-9]{3})*\.[0-9]{2})\b'),
]

FEE_MATCHERS = [
    _fee_matcher("fee_th_label", r'(?:ค่าธรรมเนียม|ค่าบริการ)[:\s]+' + _FEE),
    _fee_matcher("fee_en_label", r'(?:Fee|Service\s*Charge)[:\s]+' + _FEE),
]

DATE_MATCHERS = [
    PatternMatcher("date_month_name", re.compile(r'(\d{1,2}' + _S + r'+' + _MONTHS + r'[a-z]*\.?' + _S + r'+\d{4})', _AI)),
    PatternMatcher("date_day_first",  re.compile(r'(\d{1,2}[/\-]\d{1,2}[/\-]\d{4})', _A)),
    PatternMatcher("date_year_first", re.compile(r'(\d{4}[/\-]\d{1,2}[/\-]\d{1,2})', _A)),
]

TIME_MATCHERS = [
    PatternMatcher("time_hms", re.compile(r'(\d{1,2}:\d{2}:\d{2}(?:(?u:\s*)(?:AM|PM|น\.))?)', _AI)),
    PatternMatcher("time_hm",  re.compile(r'(\d{1,2}:\d{2}(?:(?u:\s*)(?:AM|PM|น\.))?)', _AI)),
]

REFERENCE_MATCHERS = [
    _reference_matcher(
        "reference_label",
        r'(?:เลขที่อ้างอิง|หมายเลขอ้างอิง|อ้างอิง|Reference|Ref(?u:\s*)No\.?|Ref\.?)(?u:[:\s]*)([A-Z0-9]{10,})',
        _AI,
    ),
    _reference_matcher(
        "reference_transaction",
        r'(?:Transaction(?u:\s*)(?:ID|No|Number))(?u:[:\s]*)([A-Z0-9]{10,})',
        _AI,
    ),
    _reference_matcher("reference_code", r'\b([A-Z]{3,6}[0-9]{8,})\b', _A),
]

_ACCOUNT = re.compile(r'\b\d{3}-?\d-?\d{5}-?\d\b', _A)


class SlipTextExtractor:
    """
    Extracts OcrSlipInfo from one OCR text blob.

    Call extract(text) → OcrSlipInfo.  Stateless; one instance can be shared
    between threads.
    """

    amount_matchers    = AMOUNT_MATCHERS
    fee_matchers       = FEE_MATCHERS
    date_matchers      = DATE_MATCHERS
    time_matchers      = TIME_MATCHERS
    reference_matchers = REFERENCE_MATCHERS

    # ── Public entry point ────────────────────────────────────────────────────

    def extract(self, text: str) -> OcrSlipInfo:
        if not isinstance(text, str):
            raise TypeError(f"OCR text must be str, got {type(text).__name__}")

        cleaned = self.clean_text(text)
        from_account, to_account = self._accounts(text)

        info = OcrSlipInfo(
            amount=value_of(first_match(self.amount_matchers, cleaned)),
            fee=value_of(first_match(self.fee_matchers, cleaned)),
            date=value_of(first_match(self.date_matchers, text)),
            time=value_of(first_match(self.time_matchers, text)),
            reference=value_of(first_match(self.reference_matchers, text)),
            from_account=from_account,
            to_account=to_account,
            transfer_type=self._transfer_type(text),
        )

        logger.info(
            f"[{self.__class__.__name__}] amount={info.amount!r} fee={info.fee!r} "
            f"date={info.date!r} time={info.time!r} ref={info.reference!r} "
            f"from={info.from_account!r} to={info.to_account!r} "
            f"type={info.transfer_type!r}"
        )
        return info

    # ── Field helpers ─────────────────────────────────────────────────────────

    @staticmethod
    def clean_text(text: str) -> str:
        """Drop characters outside the allow-list and collapse whitespace."""
        text = _NOISE.sub(' ', text)
        return _WHITESPACE.sub(' ', text).strip()

    @staticmethod
    def _accounts(text: str) -> Tuple[Optional[str], Optional[str]]:
        """
        First account-shaped number → source, second → destination.

        Purely positional; slips that print the destination first will be
        reported swapped.
        """
        accounts: List[str] = [m.group(0) for m in _ACCOUNT.finditer(text)]
        from_account = accounts[0] if len(accounts) >= 1 else None
        to_account   = accounts[1] if len(accounts) >= 2 else None
        return from_account, to_account

    @staticmethod
    def _transfer_type(text: str) -> Optional[str]:
        lower = text.lower()
        if "promptpay" in lower or "พร้อมเพย์" in text:
            return PROMPTPAY_LABEL
        if "โอน" in text or "transfer" in lower:
            return TRANSFER_LABEL
        return None


_default_extractor = SlipTextExtractor()


def extract_slip_info(text: str) -> OcrSlipInfo:
    """Module-level shortcut using a shared SlipTextExtractor."""
    return _default_extractor.extract(text)
