"""Normalise the date/time shapes biometric exports come in.

Canonical forms: dates are `YYYY-MM-DD`, times are 24-hour `HH:MM`.
"""
import re
from datetime import date, datetime, time, timedelta
from typing import Optional, Union
from zoneinfo import ZoneInfo

from timekeeper.core.config import settings
from timekeeper.core.exceptions import InvalidDate, InvalidTime

# Excel's day zero (accounts for the 1900 leap-year bug)
EXCEL_EPOCH = date(1899, 12, 30)

DATE_PATTERNS = [
    re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"),   # MM/DD/YYYY or M/D/YYYY
    re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$"),   # YYYY-MM-DD
    re.compile(r"^\d{1,2}-\d{1,2}-\d{4}$"),   # MM-DD-YYYY
]

TIME_PATTERNS = [
    re.compile(r"^\d{1,2}:\d{2}$"),                 # HH:MM
    re.compile(r"^\d{1,2}:\d{2}\s?(AM|PM)$", re.I),  # HH:MM AM/PM
]

_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%m-%d-%Y", "%d/%m/%Y", "%d-%m-%Y", "%Y/%m/%d")
_MONTH_DAY = re.compile(r"^(\d{1,2})[-/](\d{1,2})$")
_SERIAL = re.compile(r"^\d+(\.\d+)?$")
_DAY_FRACTION = re.compile(r"^\d*\.\d+$")
_AMPM = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2})?\s?([AaPp][Mm])$")
_CLOCK = re.compile(r"^(\d{1,2}):(\d{2})(?::(\d{2}))?$")
_NO_COLON = re.compile(r"^\d{3,4}$")


def is_date_string(value: str) -> bool:
    return any(p.match(value) for p in DATE_PATTERNS)


def is_time_string(value: str) -> bool:
    return any(p.match(value) for p in TIME_PATTERNS)


def standardize_date(value: Union[str, date, datetime, int, float, None],
                     default_year: Optional[int] = None) -> str:
    """Return `YYYY-MM-DD` or raise InvalidDate.

    Month-day values (`06-10`, `6/10`) only parse when `default_year` is given;
    biometric exports print the year once, in the report header.
    """
    if value is None or value == "":
        raise InvalidDate(value)
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)):
        return _from_excel_serial(value)

    s = str(value).strip()
    if not s:
        raise InvalidDate(value)

    # "2024-06-10 00:00:00" / "2024-06-10T08:00:00"
    if len(s) > 10 and s[4:5] == "-" and s[10:11] in (" ", "T"):
        s = s[:10]

    if _SERIAL.match(s):
        return _from_excel_serial(float(s))

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date().isoformat()
        except ValueError:
            continue

    match = _MONTH_DAY.match(s)
    if match and default_year:
        try:
            return date(default_year, int(match.group(1)), int(match.group(2))).isoformat()
        except ValueError:
            raise InvalidDate(value)

    raise InvalidDate(value)


def _from_excel_serial(serial: float) -> str:
    if serial < 1 or serial > 2958465:
        raise InvalidDate(serial)
    return (EXCEL_EPOCH + timedelta(days=int(serial))).isoformat()


def standardize_time(value: Union[str, time, datetime, float, None]) -> str:
    """Return 24-hour `HH:MM` or raise InvalidTime."""
    if value is None or value == "":
        raise InvalidTime(value)
    if isinstance(value, datetime):
        return value.strftime("%H:%M")
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, (int, float)):
        return _from_day_fraction(float(value), value)

    s = str(value).strip()

    if _DAY_FRACTION.match(s):
        return _from_day_fraction(float(s), value)

    match = _AMPM.match(s)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        period = match.group(3).upper()
        if not 1 <= hours <= 12 or minutes > 59:
            raise InvalidTime(value)
        if period == "PM" and hours != 12:
            hours += 12
        elif period == "AM" and hours == 12:
            hours = 0
        return f"{hours:02d}:{minutes:02d}"

    match = _CLOCK.match(s)
    if match:
        hours, minutes = int(match.group(1)), int(match.group(2))
        if hours > 23 or minutes > 59:
            raise InvalidTime(value)
        return f"{hours:02d}:{minutes:02d}"

    if _NO_COLON.match(s):
        padded = s.zfill(4)
        hours, minutes = int(padded[:2]), int(padded[2:])
        if hours > 23 or minutes > 59:
            raise InvalidTime(value)
        return f"{hours:02d}:{minutes:02d}"

    raise InvalidTime(value)


def _from_day_fraction(fraction: float, original) -> str:
    if not 0 <= fraction < 1:
        raise InvalidTime(original)
    total_minutes = int(round(fraction * 24 * 60)) % (24 * 60)
    return f"{total_minutes // 60:02d}:{total_minutes % 60:02d}"


def time_to_minutes(value: str) -> Optional[int]:
    """`HH:MM[:SS]` → minutes since midnight, None when malformed."""
    match = _CLOCK.match(value or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        return None
    return hours * 60 + minutes


def to_date(value: Union[str, date]) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def combine(day: Union[str, date], clock: Union[str, time]) -> datetime:
    """Date + `HH:MM` → naive wall-clock datetime."""
    if isinstance(clock, str):
        hours, minutes = clock.split(":")[:2]
        clock = time(int(hours), int(minutes))
    return datetime.combine(to_date(day), clock)


def local_now() -> datetime:
    """The "now" clock, as a naive wall-clock time in the configured zone."""
    return datetime.now(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)
