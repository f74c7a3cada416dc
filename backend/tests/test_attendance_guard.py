from datetime import datetime

import pytest

from conftest import NOW
from timekeeper.core.exceptions import MissingDate, MissingEmployeeId, RowValidationError
from timekeeper.models.attendance import AttendanceLog
from timekeeper.services.attendance_guard import AttendanceGuard, validate_file_content
from timekeeper.services.record_parser import TimeLogEntry


def entry(employee_id="1001", name="Ana Santos", day="2024-06-10", time_in="08:00",
          time_out="17:00", row=1):
    return TimeLogEntry(employee_id, name, day, time_in, time_out, None, row)


@pytest.fixture
def guard(db):
    return AttendanceGuard(db)


def test_valid_entry_has_no_warnings(guard):
    assert guard.check_entry(entry(), NOW) == []


@pytest.mark.parametrize("bad, error", [
    (entry(employee_id=""), MissingEmployeeId),
    (entry(day=""), MissingDate),
])
def test_missing_required_fields(guard, bad, error):
    with pytest.raises(error):
        guard.check_entry(bad, NOW)


@pytest.mark.parametrize("bad, message", [
    (entry(time_in=None), "Check-in time is required"),
    (entry(day="2024-06-21"), "Date cannot be in the future"),
    (entry(time_out="99:00"), "Invalid time format for check-out: 99:00"),
    (entry(employee_id="EMP#5"), "Employee ID format is invalid"),
    (entry(employee_id="x" * 51), "Employee ID format is invalid"),
])
def test_hard_errors(guard, bad, message):
    with pytest.raises(RowValidationError) as exc:
        guard.check_entry(bad, NOW)
    assert str(exc.value) == message


@pytest.mark.parametrize("suspect, warning", [
    (entry(day="2023-01-02"), "Date is more than one year old"),
    (entry(time_in="08:00", time_out="08:10"), "Work duration less than 30 minutes"),
    (entry(name="Ana   Santos"), "Employee name contains unusual characters"),
    (entry(name="R2-D2"), "Employee name contains unusual characters"),
])
def test_warnings_do_not_reject(guard, suspect, warning):
    assert warning in guard.check_entry(suspect, NOW)


def test_overnight_checkout_warns(guard):
    warnings = guard.check_entry(entry(time_in="22:00", time_out="06:00"), NOW)
    assert warnings == ["Check-out time is before or same as check-in time"]


def test_validate_splits_rows(guard):
    result = guard.validate([entry(row=1), entry(employee_id="EMP#5", row=2),
                             entry(day="2023-01-02", row=3)], NOW)
    assert [e.source_row for e in result.valid] == [1, 3]
    assert [str(r) for r in result.rejected] == ["Row 2: Employee ID format is invalid"]
    assert [str(w) for w in result.warnings] == ["Row 3: Date is more than one year old"]


def test_duplicates_against_storage_and_within_file(db, guard, make_employee):
    ana = make_employee("1001", "Ana Santos")
    ben = make_employee("1002", "Ben Cruz")
    db.add(AttendanceLog(employee_id=ana.id, date=datetime(2024, 6, 10).date(),
                         check_in_time=datetime(2024, 6, 10, 8, 0)))
    db.commit()

    employee_map = {"1001": ana.id, "1002": ben.id}
    result = guard.filter_duplicates([
        entry("1001", row=1),                       # already stored
        entry("1002", name="Ben Cruz", row=2),      # same minute, other employee
        entry("1001", day="2024-06-11", row=3),
        entry("1001", day="2024-06-11", row=4),     # repeated in file
    ], employee_map)

    assert [e.source_row for e in result.valid] == [2, 3]
    assert [r.row for r in result.rejected] == [1, 4]
    assert "already exists" in result.rejected[0].error
    assert "in file" in result.rejected[1].error


def test_validate_file_content():
    assert validate_file_content(["Employee ID"], []) == ["File contains no data rows"]
    assert validate_file_content(["Employee ID", "Date", "IN", "OUT", "IN", "OUT"], [["1"]]) == []

    errors = validate_file_content(["Employee ID", "Date", "date", ""], [["1"]])
    assert "Found 1 empty column header(s)" in errors
    assert "Duplicate column headers found: date" in errors

    mostly_empty = [["", ""]] * 9 + [["1", "x"]]
    assert validate_file_content(["Employee ID", "Date"], mostly_empty) == [
        "File appears to contain mostly empty rows"
    ]
