"""
Date/Time Normalizer
Turns the date and time strings pulled off a slip into one display value:
MM/DD/YYYY HH:MM:SS
"""

import re
from typing import Optional

_MONTHS = {
    'jan': '01', 'january': '01', 'feb': '02', 'february': '02',
    'mar': '03', 'march': '03', 'apr': '04', 'april': '04',
    'may': '05', 'jun': '06', 'june': '06', 'jul': '07',
    'july': '07', 'aug': '08', 'august': '08', 'sep': '09',
    'sept': '09', 'september': '09', 'oct': '10', 'october': '10',
    'nov': '11', 'november': '11', 'dec': '12', 'december': '12',
}

_MONTH_NAME = re.compile(
    r'(\d{1,2})(?u:\s)+(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?(?u:\s)+(\d{4})',
    re.ASCII | re.IGNORECASE,
)
_YEAR_FIRST = re.compile(r'(\d{4})[/\-](\d{1,2})[/\-](\d{1,2})', re.ASCII)
_DAY_FIRST  = re.compile(r'(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})', re.ASCII)
_CLOCK      = re.compile(r'(\d{1,2}):(\d{2})(?::(\d{2}))?', re.ASCII)

DEFAULT_TIME = "00:00:00"


def _parse_date(date_str: str):
    """Return (day, month, year) zero-padded, or None if no format matches."""
    m = _MONTH_NAME.search(date_str)
    if m:
        return m.group(1).zfill(2), _MONTHS[m.group(2).lower()], m.group(3)

    m = _YEAR_FIRST.search(date_str)
    if m:
        return m.group(3).zfill(2), m.group(2).zfill(2), m.group(1)

    m = _DAY_FIRST.search(date_str)
    if m:
        year = m.group(3)
        if len(year) == 2:
            year = "20" + year
        return m.group(1).zfill(2), m.group(2).zfill(2), year

    return None


def _format_time(time_str: Optional[str]) -> str:
    # AM/PM and "น." suffixes are ignored; the clock digits are shown as printed
    if not time_str:
        return DEFAULT_TIME
    m = _CLOCK.search(time_str)
    if not m:
        return DEFAULT_TIME
    return f"{m.group(1).zfill(2)}:{m.group(2)}:{m.group(3) or '00'}"


def format_date_time(date_str: Optional[str], time_str: Optional[str] = None) -> Optional[str]:
    """
    Normalize an extracted date/time pair.

    Args:
        date_str: raw date as matched ("15 Jan 2024", "15/01/2024", "2024-01-15", "15-01-24")
        time_str: raw time as matched ("14:30", "2:30:05 PM"), optional

    Returns:
        "MM/DD/YYYY HH:MM:SS", the raw strings joined by a space when the date
        is in an unknown format, or None without a date.
    """
    if not date_str:
        return None

    parsed = _parse_date(date_str)
    if parsed is None:
        return date_str + (f" {time_str}" if time_str else "")

    day, month, year = parsed
    return f"{month}/{day}/{year} {_format_time(time_str)}"
