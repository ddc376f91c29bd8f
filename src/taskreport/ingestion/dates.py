"""Strict date parsing for spreadsheet cells.

Cells may hold a spreadsheet serial number, a ``datetime``/``date`` (openpyxl
converts date-formatted cells), a ``DD.MM.YYYY`` string, or a free-form string
such as ISO-8601, ``2025/12/25`` or ``Dec 25, 2025`` (read with ``dateutil``).
Everything is normalized to a UTC ISO timestamp with millisecond precision,
e.g. ``2025-12-25T12:00:00.000Z``.
"""

from __future__ import annotations

import math
import numbers
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any

from dateutil import parser

# Spreadsheet day 0 is 1899-12-30; 25569 days separate it from 1970-01-01.
SERIAL_EPOCH_OFFSET_DAYS = 25569
SECONDS_PER_DAY = 86400
NOON = 12

_UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_DOTTED_DATE = re.compile(r"(\d{1,2})\.(\d{1,2})\.(\d{4})", re.ASCII)
# Bare digit/dot strings are accepted only in strict DD.MM.YYYY form.
_DOTTED_ONLY = re.compile(r"[\d.]+", re.ASCII)


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def noon_anchor(day: date, tz: tzinfo = timezone.utc) -> datetime:
    """Pin a calendar day to 12:00 so timezone shifts keep the same date."""
    return datetime(day.year, day.month, day.day, NOON, tzinfo=tz)


def format_report_date(day: date) -> str:
    """Format a report date the way file names must start: ``DD.MM.YYYY``."""
    return f"{day.day:02d}.{day.month:02d}.{day.year:04d}"


def _from_serial(serial: float) -> str | None:
    if not math.isfinite(serial):
        return None
    try:
        millis = round((serial - SERIAL_EPOCH_OFFSET_DAYS) * SECONDS_PER_DAY * 1000)
        return to_iso(_UNIX_EPOCH + timedelta(milliseconds=millis))
    except (OverflowError, ValueError):
        return None


def _parse_dotted(text: str) -> date | None:
    match = _DOTTED_DATE.fullmatch(text)
    if match is None:
        return None
    day, month, year = (int(part) for part in match.groups())
    try:
        # date() rejects overflow such as 31.02.2025 instead of rolling over
        return date(year, month, day)
    except ValueError:
        return None


def _parse_fallback(text: str, tz: tzinfo) -> str | None:
    """Generic parsing for ISO, slash and month-name strings."""
    if _DOTTED_ONLY.fullmatch(text):
        return None
    try:
        parsed = parser.parse(text)
    except (ValueError, OverflowError, parser.ParserError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return to_iso(parsed)


def parse_date_strict(value: Any, tz: tzinfo = timezone.utc) -> str | None:
    """Convert a cell value into an ISO timestamp, or ``None`` if it is not a date.

    Args:
        value: Raw cell value.
        tz: Timezone used for naive values and for noon-anchoring calendar days.

    Returns:
        UTC ISO-8601 string, or ``None``. Never raises.
    """
    if value is None or isinstance(value, bool):
        return None

    try:
        if isinstance(value, numbers.Real):
            return _from_serial(float(value))

        if isinstance(value, datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=tz)
            return to_iso(value)

        if isinstance(value, date):
            return to_iso(noon_anchor(value, tz))

        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            day = _parse_dotted(text)
            if day is not None:
                return to_iso(noon_anchor(day, tz))
            return _parse_fallback(text, tz)
    except (OverflowError, ValueError):
        return None

    return None
