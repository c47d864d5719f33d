"""
Extractor package: ranked pattern matchers for Thai bank-transfer slips.

Each slip field (amount, fee, date, time, reference, ...) owns an ordered
list of matchers; the first one that matches and validates wins.

Usage
-----
from extractor import SlipTextExtractor
info = SlipTextExtractor().extract(ocr_text)
"""

from extractor.slip_extractor import SlipTextExtractor, extract_slip_info

__all__ = ["SlipTextExtractor", "extract_slip_info"]
