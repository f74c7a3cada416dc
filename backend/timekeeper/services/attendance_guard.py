"""Row validation and duplicate detection for attendance imports.

Validation runs before employee resolution and only looks at the row itself.
Duplicate detection needs internal employee ids, so it runs afterwards:
a row is a duplicate when its (employee, check-in minute) is already stored,
or appeared earlier in the same upload. The unique constraint on
attendance_logs is still the final word; the writer maps its conflicts to
DuplicateEntry too.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional, Set, Tuple

from sqlalchemy.orm import Session

from timekeeper.core.exceptions import (
    DuplicateEntry, MissingDate, MissingEmployeeId, RowError, RowValidationError,
)
from timekeeper.models.attendance import AttendanceLog
from timekeeper.services.record_parser import TimeLogEntry
from timekeeper.services.time_parsing import combine, local_now, time_to_minutes, to_date

logger = logging.getLogger(__name__)

EMPLOYEE_ID_FORMAT = re.compile(r"^[a-zA-Z0-9_-]{1,50}$")
TIME_FORMAT = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")
NAME_FORMAT = re.compile(r"^[a-zA-ZÀ-ÿĀ-žА-я一-鿿\s\-'.]+$")
NAME_REPEATS = re.compile(r"\s{3,}|[-']{2,}|\.{2,}")

DUPLICATE_QUERY_CHUNK = 500
REPEATABLE_HEADERS = ("in", "out")


@dataclass
class GuardResult:
    valid: List[TimeLogEntry] = field(default_factory=list)
    rejected: List[RowError] = field(default_factory=list)
    warnings: List[RowError] = field(default_factory=list)


def check_in_key(employee_id: int, entry: TimeLogEntry) -> Tuple[int, datetime]:
    return employee_id, combine(entry.date, entry.time_in)


def _valid_time(value: str) -> bool:
    return bool(TIME_FORMAT.match(value)) and time_to_minutes(value) is not None


def _valid_name(name: str) -> bool:
    trimmed = (name or "").strip()
    if len(trimmed) < 2 or len(trimmed) > 255:
        return False
    if not NAME_FORMAT.match(trimmed):
        return False
    return not NAME_REPEATS.search(trimmed)


class AttendanceGuard:
    def __init__(self, db: Session):
        self.db = db

    # ── Structural + business rules ──────────────────────────────────

    def check_entry(self, entry: TimeLogEntry, now: datetime) -> List[str]:
        """Raise on a hard error, return the advisory warnings otherwise."""
        if not (entry.employee_id or "").strip():
            raise MissingEmployeeId()
        if not (entry.date or "").strip():
            raise MissingDate()
        if not entry.time_in:
            raise RowValidationError("Check-in time is required")

        work_date = to_date(entry.date)
        if work_date > now.date():
            raise RowValidationError("Date cannot be in the future")

        if not _valid_time(entry.time_in):
            raise RowValidationError(f"Invalid time format for check-in: {entry.time_in}")
        if entry.time_out and not _valid_time(entry.time_out):
            raise RowValidationError(f"Invalid time format for check-out: {entry.time_out}")

        if not EMPLOYEE_ID_FORMAT.match(entry.employee_id.strip()):
            raise RowValidationError("Employee ID format is invalid")

        warnings = []
        if work_date < (now - timedelta(days=365)).date():
            warnings.append("Date is more than one year old")

        if entry.time_out:
            start = time_to_minutes(entry.time_in)
            end = time_to_minutes(entry.time_out)
            if end <= start:
                warnings.append("Check-out time is before or same as check-in time")
            worked = end - start if end >= start else 24 * 60 - start + end
            if worked > 24 * 60:
                warnings.append("Work duration exceeds 24 hours")
            elif worked < 30:
                warnings.append("Work duration less than 30 minutes")

        if entry.employee_name and not _valid_name(entry.employee_name):
            warnings.append("Employee name contains unusual characters")
        return warnings

    def validate(self, entries: Iterable[TimeLogEntry], now: Optional[datetime] = None) -> GuardResult:
        now = now or local_now()
        result = GuardResult()
        for entry in entries:
            try:
                warnings = self.check_entry(entry, now)
            except RowValidationError as e:
                result.rejected.append(RowError(entry.source_row, str(e)))
                continue
            result.valid.append(entry)
            result.warnings.extend(RowError(entry.source_row, w) for w in warnings)

        logger.info(
            f"Validation complete: {len(result.valid)} valid, {len(result.rejected)} errors, "
            f"{len(result.warnings)} warnings"
        )
        return result

    # ── Duplicates ───────────────────────────────────────────────────

    def existing_keys(self, keys: List[Tuple[int, datetime]]) -> Set[Tuple[int, datetime]]:
        found: Set[Tuple[int, datetime]] = set()
        for start in range(0, len(keys), DUPLICATE_QUERY_CHUNK):
            chunk = keys[start:start + DUPLICATE_QUERY_CHUNK]
            employee_ids = {k[0] for k in chunk}
            instants = {k[1] for k in chunk}
            rows = (
                self.db.query(AttendanceLog.employee_id, AttendanceLog.check_in_time)
                .filter(
                    AttendanceLog.employee_id.in_(employee_ids),
                    AttendanceLog.check_in_time.in_(instants),
                )
                .all()
            )
            found.update((emp_id, check_in.replace(second=0, microsecond=0)) for emp_id, check_in in rows)
        return found

    def filter_duplicates(self, entries: Iterable[TimeLogEntry], employee_map: Dict[str, int]) -> GuardResult:
        """Split resolved entries into new rows and DuplicateEntry rejections.

        Keys are per employee: two employees checking in at the same minute
        are both kept.
        """
        candidates = [(e, check_in_key(employee_map[e.employee_id], e)) for e in entries]
        stored = self.existing_keys([key for _, key in candidates])

        result = GuardResult()
        seen: Set[Tuple[int, datetime]] = set()
        for entry, key in candidates:
            if key in stored:
                error = DuplicateEntry(
                    f"Attendance for employee {entry.employee_id} at {key[1]:%Y-%m-%d %H:%M} already exists"
                )
                result.rejected.append(RowError(entry.source_row, str(error)))
            elif key in seen:
                error = DuplicateEntry(
                    f"Duplicate attendance for employee {entry.employee_id} at {key[1]:%Y-%m-%d %H:%M} in file"
                )
                result.rejected.append(RowError(entry.source_row, str(error)))
            else:
                seen.add(key)
                result.valid.append(entry)

        if result.rejected:
            logger.info(f"Skipped {len(result.rejected)} duplicate attendance rows")
        return result


def validate_file_content(headers: List[str], rows: List[List[str]]) -> List[str]:
    """Sanity checks for the preview step. Returns error strings, empty when fine."""
    if not rows:
        return ["File contains no data rows"]
    if not headers:
        return ["File contains no header row"]

    errors = []
    empty_headers = [h for h in headers if not str(h or "").strip()]
    if empty_headers:
        errors.append(f"Found {len(empty_headers)} empty column header(s)")

    counts: Dict[str, int] = {}
    for header in headers:
        key = str(header or "").strip().lower()
        if key:
            counts[key] = counts.get(key, 0) + 1
    # Repeated IN/OUT pairs are normal: the parser takes first IN, last OUT
    duplicates = [h for h, n in counts.items() if n > 1 and h not in REPEATABLE_HEADERS]
    if duplicates:
        errors.append(f"Duplicate column headers found: {', '.join(duplicates)}")

    sample = rows[:50]
    empty_rows = sum(1 for r in sample if not any(str(c or "").strip() for c in r))
    if empty_rows > len(sample) * 0.8:
        errors.append("File appears to contain mostly empty rows")
    return errors
