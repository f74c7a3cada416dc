"""
Record parser: grid of strings → TimeLogEntry stream.

Four column layouts are understood, tried in order:

1. Explicit column mapping (caller supplies header names).
2. Fixed biometric export layout ("Employee No." / "Employee Name" / "Date" /
   "IN" ... "OUT"), where the employee is printed once per block and the
   following date rows inherit it.
3. Header aliases ("Employee ID", "Time In", ...), same rules as 1.
4. Content sniffing, when no header tells us which column is which.

Parsing is pure: iterating a RecordStream twice yields the same records.
"""
import enum
import logging
import re
import time as _clock
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Tuple, Union

from timekeeper.core.exceptions import AttendanceError, MissingHeaders, RowError
from timekeeper.services.file_formats import DetectedGrid, read_grid
from timekeeper.services.time_parsing import (
    is_date_string, is_time_string, standardize_date, standardize_time,
)

logger = logging.getLogger(__name__)


# ── Cell classification ──────────────────────────────────────────────

class CellKind(str, enum.Enum):
    DATE = "date"
    TIME = "time"
    IDENTIFIER = "identifier"
    TEXT = "text"
    EMPTY = "empty"


@dataclass(frozen=True)
class ClassifiedCell:
    kind: CellKind
    value: str


_DIGITS = re.compile(r"^\d+$")


def _empty(value: str) -> Optional[ClassifiedCell]:
    return ClassifiedCell(CellKind.EMPTY, value) if not value else None


def _date(value: str) -> Optional[ClassifiedCell]:
    return ClassifiedCell(CellKind.DATE, value) if is_date_string(value) else None


def _time(value: str) -> Optional[ClassifiedCell]:
    return ClassifiedCell(CellKind.TIME, value) if is_time_string(value) else None


def _identifier(value: str) -> Optional[ClassifiedCell]:
    return ClassifiedCell(CellKind.IDENTIFIER, value) if _DIGITS.match(value) else None


def _text(value: str) -> Optional[ClassifiedCell]:
    return ClassifiedCell(CellKind.TEXT, value)


# Priority order matters: a date like 2024-06-10 must never be read as an id.
CLASSIFIERS: Tuple[Callable[[str], Optional[ClassifiedCell]], ...] = (
    _empty, _date, _time, _identifier, _text,
)


def classify_cell(raw) -> ClassifiedCell:
    value = str(raw).strip() if raw is not None else ""
    for classifier in CLASSIFIERS:
        cell = classifier(value)
        if cell is not None:
            return cell
    return ClassifiedCell(CellKind.TEXT, value)


# ── Records ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TimeLogEntry:
    employee_id: str
    employee_name: str
    date: str                       # YYYY-MM-DD
    time_in: Optional[str] = None   # HH:MM
    time_out: Optional[str] = None  # HH:MM
    department: Optional[str] = None
    source_row: int = 0             # 1-based data row


ParsedRow = Union[TimeLogEntry, RowError]


@dataclass
class ColumnMapping:
    """Header names for each field. Matching is case-insensitive."""
    employee_id: Optional[str] = None
    name: Optional[str] = None
    date: Optional[str] = None
    time_in: Optional[str] = None
    time_out: Optional[str] = None
    department: Optional[str] = None

    _KEYS = {
        "employeeId": "employee_id", "employee_id": "employee_id",
        "name": "name", "employeeName": "name", "employee_name": "name",
        "date": "date",
        "timeIn": "time_in", "time_in": "time_in",
        "timeOut": "time_out", "time_out": "time_out",
        "department": "department",
    }

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> Optional["ColumnMapping"]:
        """Accepts the dashboard's camelCase keys as well as snake_case."""
        if not data:
            return None
        if not isinstance(data, dict):
            raise ValueError("Column mapping must be an object")
        kwargs = {}
        for key, value in data.items():
            attr = cls._KEYS.get(key)
            if attr and value:
                kwargs[attr] = str(value)
        mapping = cls(**kwargs)
        return None if mapping.is_empty() else mapping

    def is_empty(self) -> bool:
        return not any([self.employee_id, self.name, self.date,
                        self.time_in, self.time_out, self.department])


HEADER_ALIASES: Dict[str, Tuple[str, ...]] = {
    "employee_id": ("employee id", "employee no.", "employee no", "employee number",
                    "emp id", "emp no", "user id", "badge id", "badge", "id"),
    "name": ("employee name", "name", "full name"),
    "date": ("date", "work date"),
    "time_in": ("time in", "in", "check in", "clock in"),
    "time_out": ("time out", "out", "check out", "clock out"),
    "department": ("department", "dept"),
}

FIXED_LAYOUT_HEADERS = ("Employee No.", "Employee Name", "Date", "IN", "OUT")


@dataclass(frozen=True)
class ColumnIndex:
    employee_id: int = -1
    name: int = -1
    date: int = -1
    time_in: int = -1
    time_out: int = -1
    department: int = -1


def _normalise(header: str) -> str:
    return str(header or "").strip().lower()


def _find(headers: List[str], target: Optional[str]) -> int:
    if not target:
        return -1
    wanted = _normalise(target)
    for i, header in enumerate(headers):
        if _normalise(header) == wanted:
            return i
    return -1


def columns_from_mapping(headers: List[str], mapping: ColumnMapping) -> ColumnIndex:
    index = ColumnIndex(
        employee_id=_find(headers, mapping.employee_id),
        name=_find(headers, mapping.name),
        date=_find(headers, mapping.date),
        time_in=_find(headers, mapping.time_in),
        time_out=_find(headers, mapping.time_out),
        department=_find(headers, mapping.department),
    )
    if index.employee_id == -1:
        raise MissingHeaders("Employee ID column not found or not mapped")
    if index.date == -1:
        raise MissingHeaders("Date column not found or not mapped")
    return index


def columns_from_aliases(headers: List[str]) -> Optional[ColumnIndex]:
    """First matching column per field, except time-out which takes the last."""
    normalised = [_normalise(h) for h in headers]

    def first(field_name):
        for alias in HEADER_ALIASES[field_name]:
            if alias in normalised:
                return normalised.index(alias)
        return -1

    def last(field_name):
        hits = [i for i, h in enumerate(normalised) if h in HEADER_ALIASES[field_name]]
        return hits[-1] if hits else -1

    index = ColumnIndex(
        employee_id=first("employee_id"),
        name=first("name"),
        date=first("date"),
        time_in=first("time_in"),
        time_out=last("time_out"),
        department=first("department"),
    )
    if index.employee_id == -1 or index.date == -1:
        return None
    if index.time_in == -1 and index.time_out == -1:
        return None
    return index


def fixed_layout_columns(headers: List[str]) -> Optional[ColumnIndex]:
    stripped = [str(h or "").strip() for h in headers]
    if not all(h in stripped for h in FIXED_LAYOUT_HEADERS):
        return None
    return ColumnIndex(
        employee_id=stripped.index("Employee No."),
        name=stripped.index("Employee Name"),
        date=stripped.index("Date"),
        time_in=stripped.index("IN"),
        time_out=len(stripped) - 1 - stripped[::-1].index("OUT"),
        department=_find(stripped, "Department"),
    )


# ── Sticky employee context ──────────────────────────────────────────

@dataclass(frozen=True)
class EmployeeContext:
    """The employee block the scan is currently inside."""
    employee_id: str = ""
    employee_name: str = ""

    def advance(self, employee_id: str, employee_name: str) -> "EmployeeContext":
        if employee_id and employee_name:
            return EmployeeContext(employee_id, employee_name)
        return self


def _value(row: List[str], col: int) -> str:
    if col < 0 or col >= len(row):
        return ""
    value = row[col]
    return str(value).strip() if value is not None else ""


def _build_entry(employee_id, employee_name, raw_date, raw_in, raw_out, department,
                 source_row, default_year) -> ParsedRow:
    try:
        return TimeLogEntry(
            employee_id=employee_id,
            employee_name=employee_name,
            date=standardize_date(raw_date, default_year=default_year),
            time_in=standardize_time(raw_in) if raw_in else None,
            time_out=standardize_time(raw_out) if raw_out else None,
            department=department or None,
            source_row=source_row,
        )
    except AttendanceError as e:
        return RowError(source_row, str(e))


def mapped_step(ctx: EmployeeContext, row: List[str], source_row: int,
                cols: ColumnIndex, default_year: Optional[int]
                ) -> Tuple[EmployeeContext, Optional[ParsedRow]]:
    employee_id = _value(row, cols.employee_id)
    employee_name = _value(row, cols.name)
    ctx = ctx.advance(employee_id, employee_name)

    final_id = employee_id or ctx.employee_id
    final_name = employee_name or ctx.employee_name or "Unknown"
    raw_date = _value(row, cols.date)
    raw_in = _value(row, cols.time_in)
    raw_out = _value(row, cols.time_out)

    if not final_id or not raw_date:
        return ctx, None
    if not raw_in and not raw_out:
        return ctx, None

    return ctx, _build_entry(final_id, final_name, raw_date, raw_in, raw_out,
                             _value(row, cols.department), source_row, default_year)


def fixed_layout_step(ctx: EmployeeContext, row: List[str], source_row: int,
                      cols: ColumnIndex, default_year: Optional[int]
                      ) -> Tuple[EmployeeContext, Optional[ParsedRow]]:
    ctx = ctx.advance(_value(row, cols.employee_id), _value(row, cols.name))
    if not ctx.employee_id or not ctx.employee_name:
        return ctx, None

    raw_date = _value(row, cols.date)
    raw_in = _value(row, cols.time_in)
    raw_out = _value(row, cols.time_out)
    if not raw_date or not (raw_in or raw_out):
        return ctx, None

    return ctx, _build_entry(ctx.employee_id, ctx.employee_name, raw_date, raw_in, raw_out,
                             _value(row, cols.department), source_row, default_year)


def sniff_row(row: List[str], source_row: int) -> Optional[ParsedRow]:
    """Work out which cell is which from content alone."""
    if len([c for c in row if str(c).strip()]) < 4:
        return None

    name = employee_id = raw_date = raw_in = raw_out = ""
    for cell in map(classify_cell, row):
        if cell.kind == CellKind.DATE:
            raw_date = cell.value
        elif cell.kind == CellKind.TIME:
            if not raw_in:
                raw_in = cell.value
            elif not raw_out:
                raw_out = cell.value
        elif cell.kind == CellKind.IDENTIFIER:
            employee_id = cell.value
        elif cell.kind == CellKind.TEXT and not name:
            name = cell.value

    if not (name and employee_id and raw_date and raw_in):
        return None
    return _build_entry(employee_id, name, raw_date, raw_in, raw_out, None, source_row, None)


# ── Stream ───────────────────────────────────────────────────────────

class ParseStrategy(str, enum.Enum):
    MAPPED = "mapped"
    FIXED_LAYOUT = "fixed_layout"
    HEADER_ALIASES = "header_aliases"
    CONTENT_SNIFFING = "content_sniffing"


class RecordStream:
    """Restartable iterable of TimeLogEntry / RowError for one grid."""

    def __init__(self, grid: DetectedGrid, mapping: Optional[ColumnMapping] = None):
        self.grid = grid
        self.default_year = report_year(grid)
        self.columns: Optional[ColumnIndex] = None

        if mapping is not None and not mapping.is_empty():
            self.strategy = ParseStrategy.MAPPED
            self.columns = columns_from_mapping(grid.headers, mapping)
            return

        fixed = fixed_layout_columns(grid.headers) if grid.is_spreadsheet else None
        if fixed is not None:
            self.strategy = ParseStrategy.FIXED_LAYOUT
            self.columns = fixed
            return

        aliased = columns_from_aliases(grid.headers)
        if aliased is not None:
            self.strategy = ParseStrategy.HEADER_ALIASES
            self.columns = aliased
        else:
            self.strategy = ParseStrategy.CONTENT_SNIFFING

    def __iter__(self) -> Iterator[ParsedRow]:
        if self.strategy == ParseStrategy.CONTENT_SNIFFING:
            for i, row in enumerate(self.grid.data_rows, start=1):
                outcome = sniff_row(row, i)
                if outcome is not None:
                    yield outcome
            return

        step = fixed_layout_step if self.strategy == ParseStrategy.FIXED_LAYOUT else mapped_step
        ctx = EmployeeContext()
        for i, row in enumerate(self.grid.data_rows, start=1):
            if not row:
                continue
            ctx, outcome = step(ctx, row, i, self.columns, self.default_year)
            if outcome is not None:
                yield outcome


def report_year(grid: DetectedGrid) -> Optional[int]:
    """Year of the report period, used for dates printed without one."""
    if not grid.start_date:
        return None
    try:
        return int(standardize_date(grid.start_date)[:4])
    except AttendanceError:
        logger.warning(f"Unreadable report start date: {grid.start_date!r}")
        return None


@dataclass
class ParseResult:
    entries: List[TimeLogEntry]
    row_errors: List[RowError]
    total_rows: int
    headers: List[str]
    metadata: dict = field(default_factory=dict)


def parse_upload(file_bytes: bytes, filename: str,
                 column_mapping: Optional[ColumnMapping] = None) -> ParseResult:
    started = _clock.monotonic()
    grid = read_grid(file_bytes, filename)
    stream = RecordStream(grid, column_mapping)

    entries: List[TimeLogEntry] = []
    errors: List[RowError] = []
    for outcome in stream:
        if isinstance(outcome, RowError):
            errors.append(outcome)
        else:
            entries.append(outcome)

    logger.info(
        f"Parsed {filename}: {len(entries)} entries, {len(errors)} row errors "
        f"({stream.strategy.value}, {len(grid.data_rows)} data rows)"
    )
    return ParseResult(
        entries=entries,
        row_errors=errors,
        total_rows=len(grid.data_rows),
        headers=[h for h in grid.headers if h],
        metadata={
            "file_type": grid.file_type,
            "strategy": stream.strategy.value,
            "header_index": grid.header_index,
            "start_date": grid.start_date,
            "end_date": grid.end_date,
            "processing_time_ms": int((_clock.monotonic() - started) * 1000),
        },
    )
