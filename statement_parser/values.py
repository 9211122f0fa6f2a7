"""Typed value parsers for statement cells.

None of these raise: anything that does not look like the expected value
comes back as ``None`` and the row extractor decides what to do with it.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Tuple


_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

_mdy = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_iso = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_mon_d_y = re.compile(r"([A-Za-z]{3})[a-z]*\.?\s+(\d{1,2}),?\s+(\d{4})")

_unsigned_number = re.compile(r"^(?:\d+\.?\d*|\.\d+)$")
_signed_integer = re.compile(r"^[-+]?\d+$")

# Any single date in one of the three accepted shapes.
_DATE = r"(?:\d{1,2}/\d{1,2}/\d{4}|\d{4}-\d{2}-\d{2}|[A-Za-z]{3,9}\.?\s+\d{1,2},?\s+\d{4})"
_date_range = re.compile(rf"({_DATE})\s*(?:-|–|—|to|through)\s*({_DATE})", re.IGNORECASE)
_statement_period = re.compile(rf"Statement\s+Period\s*[:\s]\s*({_DATE})", re.IGNORECASE)
_account_number = re.compile(
    r"Account\s*(?:Number|No\.?|#)?\s*[:#]?\s*([A-Z0-9-]*\d[A-Z0-9-]*)", re.IGNORECASE
)
_standalone_account = re.compile(r"^[A-Z]{2,4}\d{6,10}$")
_zero_width = re.compile(r"[\u200B-\u200D\uFEFF]")


def _iso_date(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def parse_date(value: str) -> Optional[str]:
    """Normalize ``MM/DD/YYYY``, ``YYYY-MM-DD`` or ``Mon D, YYYY`` to ``YYYY-MM-DD``."""
    if not value:
        return None

    m = _mdy.search(value)
    if m:
        month, day, year = m.groups()
        return _iso_date(int(year), int(month), int(day))

    m = _iso.search(value)
    if m:
        year, month, day = m.groups()
        return _iso_date(int(year), int(month), int(day))

    m = _mon_d_y.search(value)
    if m:
        mon, day, year = m.groups()
        month = _MONTHS.get(mon.lower())
        if month:
            return _iso_date(int(year), month, int(day))

    return None


def parse_currency(value: str) -> Optional[Decimal]:
    """``"$1,234.56"`` -> 1234.56, ``"(12.34)"`` -> -12.34, ``"abc"`` -> None."""
    if value is None:
        return None
    cleaned = re.sub(r"[$,\s]", "", value)
    negative = "(" in cleaned
    cleaned = cleaned.replace("(", "").replace(")", "")
    # "-$5.00" and "$-5.00" both reduce to "-5.00" at this point
    if cleaned.startswith("-"):
        negative = True
        cleaned = cleaned[1:]
    elif cleaned.startswith("+"):
        cleaned = cleaned[1:]
    if not _unsigned_number.match(cleaned):
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return -amount if negative else amount


def parse_integer(value: str) -> Optional[int]:
    if value is None:
        return None
    cleaned = re.sub(r"[,\s]", "", value)
    if not _signed_integer.match(cleaned):
        return None
    return int(cleaned)


def parse_price(value: str) -> Optional[Decimal]:
    if value is None:
        return None
    cleaned = re.sub(r"[$,\s]", "", value)
    negative = cleaned.startswith("-")
    if negative or cleaned.startswith("+"):
        cleaned = cleaned[1:]
    if not _unsigned_number.match(cleaned):
        return None
    try:
        price = Decimal(cleaned)
    except InvalidOperation:
        return None
    return -price if negative else price


# ---------- text helpers ----------
def clean_text(text: str) -> str:
    text = _zero_width.sub("", text or "")
    return re.sub(r"\s+", " ", text).strip()


def is_empty_text(text: str) -> bool:
    return clean_text(text) == ""


def extract_account_number(texts: Iterable[str]) -> Optional[str]:
    for text in texts:
        m = _account_number.search(text)
        if m:
            return m.group(1)
        text = text.strip()
        if _standalone_account.match(text):
            return text
    return None


def extract_statement_period(texts: Iterable[str]) -> Tuple[Optional[str], Optional[str]]:
    """``(period_start, period_end)`` from the first text carrying a period.

    A date range wins over a single ``Statement Period:`` date found in the
    same text, so ``"Statement Period: 06/01/2024 - 06/30/2024"`` ends on
    the 30th.
    """
    for text in texts:
        m = _date_range.search(text)
        if m:
            end = parse_date(m.group(2))
            if end:
                return parse_date(m.group(1)), end
        m = _statement_period.search(text)
        if m:
            end = parse_date(m.group(1))
            if end:
                return None, end
    return None, None


def extract_statement_date(texts: Iterable[str]) -> Optional[str]:
    return extract_statement_period(texts)[1]
