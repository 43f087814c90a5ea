"""ADLENS — Scalar Parsers.

Turn raw spreadsheet cells into numbers and ISO dates. Spreadsheet input is
messy, so none of these raise: a bad cell becomes 0 or "".
"""

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Any

# Serial day 25569 is 1970-01-01 for engines whose epoch is 1899-12-30
SERIAL_EPOCH_OFFSET = 25569
SECONDS_PER_DAY = 86400

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_LEADING_NUMBER = re.compile(r"^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")
_EMPTY_TOKENS = {"", "-"}

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%d-%b-%Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%Y年%m月%d日",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def _leading_float(text: str) -> float:
    """Read the numeric prefix of a string, like a lenient float parse."""
    match = _LEADING_NUMBER.match(text)
    if not match:
        return 0.0
    try:
        return _finite(float(match.group(0)))
    except ValueError:
        return 0.0


def parse_number(value: Any) -> float:
    """Parse a possibly comma-formatted number.

    Examples:
        "157,047"   -> 157047.0
        " 1,234.5 " -> 1234.5
        "-"         -> 0.0
        ""          -> 0.0
        42          -> 42.0
    """
    if _is_number(value):
        return _finite(float(value))
    if not isinstance(value, str):
        return 0.0
    clean = value.replace(",", "").strip()
    if clean in _EMPTY_TOKENS:
        return 0.0
    return _leading_float(clean)


def parse_percentage(value: Any) -> float:
    """Parse a percentage into a fraction.

    Numbers are assumed to already be fractions and pass through unchanged;
    strings lose their "%" and are divided by 100 ("0.90%" -> 0.009).
    """
    if _is_number(value):
        return _finite(float(value))
    if not isinstance(value, str):
        return 0.0
    clean = value.replace("%", "").replace(",", "").strip()
    if clean in _EMPTY_TOKENS:
        return 0.0
    return _leading_float(clean) / 100


def _from_serial(serial: float) -> str:
    millis = round((serial - SERIAL_EPOCH_OFFSET) * SECONDS_PER_DAY * 1000)
    try:
        return (_UNIX_EPOCH + timedelta(milliseconds=millis)).strftime("%Y-%m-%d")
    except OverflowError:
        return ""


def _from_string(text: str) -> str:
    text = text.strip()
    if not text:
        return ""
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).strftime("%Y-%m-%d")
        except ValueError:
            continue
    # ISO timestamps, e.g. "2024-01-05T16:00:00.000Z" from a JSON store read
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%d")


def normalize_date(value: Any) -> str:
    """Normalize a date cell to YYYY-MM-DD, or "" when unparsable.

    Accepts date/datetime values, spreadsheet serial day counts and date
    strings in the common export formats.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.strftime("%Y-%m-%d")
    if isinstance(value, date):
        return value.isoformat()
    if _is_number(value):
        if not math.isfinite(value):
            return ""
        return _from_serial(float(value))
    if isinstance(value, str):
        return _from_string(value)
    return ""
