"""
Field normalization: canonical DD/MM/YYYY dates, currency-tolerant numbers
and YYYY-MM month keys. Every function here is total: malformed input
degrades to a sentinel instead of raising.
"""

from __future__ import annotations

import math
import re
import warnings
from datetime import date, datetime, timedelta
from typing import Any

import pandas as pd

from sheet_ledger.engine.aliases import cell_text, is_missing

NOT_AVAILABLE = "N/A"

EXCEL_EPOCH = datetime(1899, 12, 30)
EXCEL_SERIAL_RANGE = (40_000, 55_000)

CANONICAL_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
EXCEL_SERIAL_RE = re.compile(r"^\d{5}$")
YEAR_FIRST_RE = re.compile(r"^\d{4}[-/.]")
DATE_PART_SPLIT_RE = re.compile(r"[-/]")
LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
NUMBER_NOISE_RE = re.compile(r"[€£¥₹$,\s]")
LEADING_NUMBER_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
MONTH_PREFIX_RE = re.compile(r"^(\d{4})[-/](\d{1,2})(?:[-/]|$)")


def _fmt(value: date) -> str:
    return f"{value.day:02d}/{value.month:02d}/{value.year:04d}"


def _from_excel_serial(serial: float) -> datetime | None:
    low, high = EXCEL_SERIAL_RANGE
    if not low <= serial <= high:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def _general_parse(text: str) -> datetime | None:
    # pandas turns words such as "today" into timestamps; real dates carry digits
    if not any(ch.isdigit() for ch in text):
        return None
    # day-first everywhere except YYYY-MM-DD style strings
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(text, dayfirst=not YEAR_FIRST_RE.match(text))
    except (ValueError, TypeError, OverflowError):
        return None
    if is_missing(parsed):
        return None
    return parsed.to_pydatetime()


def _leading_int(text: str) -> int | None:
    match = LEADING_INT_RE.match(text)
    return int(match.group(1)) if match else None


def _reorder_parts(text: str) -> str:
    parts = DATE_PART_SPLIT_RE.split(text)
    if len(parts) != 3:
        return text
    first, second, third = parts
    if len(first) == 4:
        return f"{third.zfill(2)}/{second.zfill(2)}/{first}"
    leading = _leading_int(first)
    if leading is not None and leading > 12:
        return f"{first.zfill(2)}/{second.zfill(2)}/{third}"
    return f"{second.zfill(2)}/{first.zfill(2)}/{third}"


def to_canonical(value: Any) -> str:
    """
    Format a date-like cell as DD/MM/YYYY.

    Blank input yields "N/A". Date objects format directly, Excel serial
    numbers convert from the 1899-12-30 epoch, and strings go through the
    day-first parser before a split-and-reorder fallback. Strings that do
    not split into three parts come back unchanged.
    """
    if is_missing(value):
        return NOT_AVAILABLE
    if isinstance(value, (datetime, date)):
        return _fmt(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        serial_date = _from_excel_serial(float(value))
        if serial_date is not None:
            return _fmt(serial_date)

    text = cell_text(value)
    if not text or text.upper() == NOT_AVAILABLE:
        return NOT_AVAILABLE

    if EXCEL_SERIAL_RE.match(text):
        serial_date = _from_excel_serial(int(text))
        if serial_date is not None:
            return _fmt(serial_date)

    parsed = _general_parse(text)
    if parsed is not None:
        return _fmt(parsed)
    return _reorder_parts(text)


def parse_canonical(text: str) -> datetime | None:
    """Parse a DD/MM/YYYY string back to a datetime; anything else is None."""
    match = CANONICAL_RE.match((text or "").strip())
    if not match:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        return None


def to_number(value: Any) -> float:
    if is_missing(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        # leading number only, so "10 packs" reads as 10
        match = LEADING_NUMBER_RE.match(NUMBER_NOISE_RE.sub("", str(value)))
        if not match:
            return 0.0
        number = float(match.group(0))
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def month_key(value: date) -> str:
    return f"{value.year:04d}-{value.month:02d}"


def next_month_key(today: date) -> str:
    if today.month == 12:
        return f"{today.year + 1:04d}-01"
    return f"{today.year:04d}-{today.month + 1:02d}"


def month_key_text(value: Any) -> str:
    if isinstance(value, (datetime, date)):
        return month_key(value)
    text = cell_text(value)
    # workbook date cells arrive as "2024-01-01 00:00:00"
    match = MONTH_PREFIX_RE.match(text)
    if match:
        year, month = match.groups()
        return f"{year}-{month.zfill(2)}"
    return text
