"""Tolerant parsing of raw proforma records and calendar-month helpers.

Records arrive from forms and storage with numbers as strings, blanks or
nulls. Everything is coerced here, at the input boundary, so the
calculation modules only ever see floats and ``date`` objects.
"""

import math
from datetime import date, datetime
from typing import Any, Optional

from dateutil.relativedelta import relativedelta


def to_number_or_zero(value: Any) -> float:
    """Coerce a loosely-typed numeric field to float, defaulting to 0.

    Accepts ints, floats, numeric strings (with optional thousands
    separators or a leading ``$``). Anything missing, blank, non-numeric,
    NaN or infinite becomes 0.0.

    Example:
        >>> to_number_or_zero("1,250,000")
        1250000.0
        >>> to_number_or_zero("")
        0.0
    """
    if value is None or isinstance(value, bool):
        return 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "").lstrip("$")
        if not text:
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0

    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def to_optional_number(value: Any) -> Optional[float]:
    """Like ``to_number_or_zero`` but keeps "not supplied" as None."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return to_number_or_zero(value)


def parse_date(value: Any) -> Optional[date]:
    """Parse an ISO-8601 calendar date, returning None when absent or invalid.

    ``datetime`` values are truncated to their date. Strings may carry a
    time part (``2026-03-15T00:00:00``); only the date portion is used.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def month_start(value: date) -> date:
    """Floor a date to the first day of its month."""
    return value.replace(day=1)


def add_months(value: date, months: int) -> date:
    """Shift a date by a whole number of calendar months."""
    return value + relativedelta(months=months)


def month_offset(reference: date, value: date) -> int:
    """Calendar months from ``reference`` to ``value`` (day of month ignored).

    Negative when ``value`` falls in an earlier month than ``reference``.
    """
    return (value.year - reference.year) * 12 + (value.month - reference.month)


def month_key(value: date) -> str:
    """Year-month key, e.g. ``"2026-03"``."""
    return f"{value.year:04d}-{value.month:02d}"


def parse_month_key(key: str) -> date:
    """Inverse of ``month_key``: first day of the keyed month."""
    return date.fromisoformat(f"{key}-01")


def quarter_label(value: date) -> str:
    """Short quarter label, e.g. ``"Q1'26"``."""
    quarter = (value.month - 1) // 3 + 1
    return f"Q{quarter}'{value.year % 100:02d}"
