"""Hour breakdown for one check-in/check-out pair.

Pure function, no rounding. Sunday and overnight hours are classification
tags over the same total, not a partition: a Sunday overnight shift reports
sunday_hours == overnight_hours == total_hours.
"""
from dataclasses import dataclass, asdict
from datetime import date, timedelta
from typing import Optional, Union

from timekeeper.core.config import settings
from timekeeper.core.exceptions import InvalidTime
from timekeeper.services.time_parsing import combine, time_to_minutes, to_date


@dataclass(frozen=True)
class AttendanceMetrics:
    total_hours: float = 0.0
    regular_hours: float = 0.0
    overtime_hours: float = 0.0
    sunday_hours: float = 0.0
    overnight_hours: float = 0.0
    is_sunday: bool = False
    is_overnight: bool = False
    is_incomplete: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


def is_overnight(time_in: str, time_out: str) -> bool:
    """Checkout clock-time earlier than check-in means the shift crossed midnight."""
    start, end = time_to_minutes(time_in), time_to_minutes(time_out)
    if start is None:
        raise InvalidTime(time_in)
    if end is None:
        raise InvalidTime(time_out)
    return end < start


def compute_metrics(
    time_in: str,
    time_out: Optional[str],
    day: Union[str, date],
    regular_hours_per_day: Optional[float] = None,
) -> AttendanceMetrics:
    threshold = settings.REGULAR_HOURS_PER_DAY if regular_hours_per_day is None else regular_hours_per_day
    work_date = to_date(day)
    # Python counts Monday as 0; Sunday is 6
    sunday = work_date.weekday() == 6

    if not time_out:
        return AttendanceMetrics(is_sunday=sunday, is_incomplete=True)

    overnight = is_overnight(time_in, time_out)
    check_in = combine(work_date, time_in)
    check_out = combine(work_date + timedelta(days=1) if overnight else work_date, time_out)

    total = (check_out - check_in).total_seconds() / 3600
    return AttendanceMetrics(
        total_hours=total,
        regular_hours=min(total, threshold),
        overtime_hours=max(total - threshold, 0.0),
        sunday_hours=total if sunday else 0.0,
        overnight_hours=total if overnight else 0.0,
        is_sunday=sunday,
        is_overnight=overnight,
        is_incomplete=False,
    )
