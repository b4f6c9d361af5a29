# reconciler/core/normalizers.py

"""
Field normalization for statement cells.

Turns raw cell values (strings, numbers, spreadsheet dates) into typed
dates and signed decimal amounts. Returns None for values that can't be
read; the caller decides whether that drops the row.
"""

from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any
import re

from dateutil import parser as date_parser

from reconciler.config import get_settings

SPREADSHEET_EPOCH = date(1899, 12, 30)
MINOR_UNIT = Decimal("0.01")

# Fallback parsing must not depend on today's date
_FALLBACK_DEFAULT = datetime(2000, 1, 1)

_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{2}|\d{4})$")
_DASH_DATE = re.compile(r"^(\d{1,2})-(\d{1,2})-(\d{2}|\d{4})$")

_CURRENCY_NOISE = re.compile(r"[$€£¥,\s]")


def normalize_date(value: Any, day_first: bool | None = None) -> date | None:
    """
    Normalize a cell value to a calendar date.

    Handles:
    - date / datetime objects
    - spreadsheet serial day counts (epoch 1899-12-30)
    - ISO strings (YYYY-MM-DD)
    - slash and dash numeric dates, read month-first unless day_first
    - anything dateutil can parse, as a last resort
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        return serial_to_date(value)

    if not isinstance(value, str):
        return None

    text = value.strip().strip("\"'")
    if not text:
        return None

    if day_first is None:
        day_first = get_settings().day_first

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups())
        return _safe_date(year, month, day)

    match = _SLASH_DATE.match(text) or _DASH_DATE.match(text)
    if match:
        first, second, year = match.groups()
        parsed = _day_month_date(int(first), int(second), _expand_year(year), day_first)
        if parsed:
            return parsed

    try:
        return date_parser.parse(text, dayfirst=day_first, default=_FALLBACK_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def serial_to_date(serial: float) -> date | None:
    """Spreadsheet serial day count to date. Fractions (time of day) are dropped."""
    try:
        return SPREADSHEET_EPOCH + timedelta(days=int(serial))
    except (OverflowError, ValueError):
        return None


def _expand_year(year: str) -> int:
    value = int(year)
    return 2000 + value if len(year) == 2 else value


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _day_month_date(first: int, second: int, year: int, day_first: bool) -> date | None:
    """Read the host convention first; swap only when that isn't a real date."""
    if day_first:
        return _safe_date(year, second, first) or _safe_date(year, first, second)
    return _safe_date(year, first, second) or _safe_date(year, second, first)


def normalize_amount(amount: Any) -> Decimal | None:
    """
    Normalize amount to a signed Decimal with two decimal places.

    Handles:
    - ints / floats / Decimals
    - strings with currency symbols and thousands separators
    - parentheses for negatives: (45.00) -> -45.00
    """
    if amount is None or isinstance(amount, bool):
        return None

    if isinstance(amount, Decimal):
        value = amount
    elif isinstance(amount, (int, float)):
        value = Decimal(str(amount))
    elif isinstance(amount, str):
        cleaned = _CURRENCY_NOISE.sub("", amount)
        if not cleaned:
            return None

        negative = False
        if cleaned.startswith("(") and cleaned.endswith(")"):
            negative = True
            cleaned = cleaned[1:-1]

        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            return None

        if negative:
            value = -value
    else:
        return None

    if not value.is_finite():
        return None

    try:
        return value.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # Too many digits for the decimal context
        return None


def normalize_string(s: str | None) -> str:
    """
    Normalize string for comparison.

    - Lowercase
    - Remove special characters
    - Collapse whitespace
    """
    if not s:
        return ""

    s = s.lower()
    s = re.sub(r'[^a-z0-9\s]', ' ', s)
    s = re.sub(r'\s+', ' ', s).strip()
    return s


def normalize_merchant_name(name: str | None) -> str:
    """
    Normalize merchant or vendor name for matching.

    Handles:
    - Common suffixes (Inc, LLC, Corp, etc.)
    - Punctuation
    - Case
    """
    if not name:
        return ""

    name = name.lower().strip()

    # Remove common business suffixes
    suffixes = [
        r'\s+inc\.?$',
        r'\s+llc\.?$',
        r'\s+corp\.?$',
        r'\s+corporation$',
        r'\s+ltd\.?$',
        r'\s+limited$',
        r'\s+co\.?$',
        r'\s+company$',
    ]
    for suffix in suffixes:
        name = re.sub(suffix, '', name, flags=re.IGNORECASE)

    return normalize_string(name)


def is_blank(value: Any) -> bool:
    """True for None and whitespace-only strings."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()
