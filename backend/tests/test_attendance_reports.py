import io
from datetime import date, datetime, time

import openpyxl
import pytest

from timekeeper.models.attendance import AttendanceLog
from timekeeper.models.employee import Department
from timekeeper.services.attendance_reports import (
    EXPORT_COLUMNS, attendance_summary, export_attendance, late_arrivals, query_logs,
)


@pytest.fixture
def sample(db, make_employee, make_schedule):
    warehouse = Department(name="Warehouse")
    db.add(warehouse)
    db.commit()
    ana = make_employee("1001", "Ana Santos", department_id=warehouse.id)
    ben = make_employee("1002", "Ben Cruz")
    ana_monday = make_schedule(ana, day=date(2024, 6, 10))
    make_schedule(ben, day=date(2024, 6, 10), start=time(9, 0), end=time(18, 0))

    logs = [
        # Ana, Monday: 8:12 against an 8:00 start
        AttendanceLog(employee_id=ana.id, schedule_id=ana_monday.id, date=date(2024, 6, 10),
                      check_in_time=datetime(2024, 6, 10, 8, 12),
                      check_out_time=datetime(2024, 6, 10, 18, 12),
                      total_hours=10, regular_hours=8, raw_ot_hours=2, approved_ot_hours=1.5,
                      is_incomplete=False),
        # Ana, Sunday overnight
        AttendanceLog(employee_id=ana.id, date=date(2024, 6, 9),
                      check_in_time=datetime(2024, 6, 9, 22, 0),
                      check_out_time=datetime(2024, 6, 10, 6, 0),
                      total_hours=8, regular_hours=8, sunday_hours=8, overnight_hours=8,
                      is_sunday=True, is_overnight=True, is_incomplete=False),
        # Ben, unlinked but inside the grace period
        AttendanceLog(employee_id=ben.id, date=date(2024, 6, 10),
                      check_in_time=datetime(2024, 6, 10, 9, 4), is_incomplete=True),
    ]
    db.add_all(logs)
    db.commit()
    return {"ana": ana, "ben": ben, "warehouse": warehouse, "logs": logs}


def test_summary(db, sample):
    summary = attendance_summary(query_logs(db).all())
    assert summary == {
        "total_days_worked": 3,
        "total_hours_worked": 18.0,
        "total_overtime_hours": 2.0,
        "total_approved_overtime": 1.5,
        "total_sunday_hours": 8.0,
        "total_overnight_hours": 8.0,
        "total_employees": 2,
    }


def test_query_filters(db, sample):
    assert query_logs(db, start=date(2024, 6, 10)).count() == 2
    assert query_logs(db, employee_ids=[sample["ben"].id]).count() == 1
    assert query_logs(db, department_id=sample["warehouse"].id).count() == 2
    assert query_logs(db, approval_status="approved").count() == 0


def test_late_arrivals(db, sample):
    rows = late_arrivals(db, grace_minutes=5)
    assert len(rows) == 1
    assert rows[0]["external_id"] == "1001"
    assert rows[0]["minutes_late"] == 12
    assert rows[0]["scheduled_start"] == "08:00"

    # Ben's 4 minutes count once there is no grace
    assert len(late_arrivals(db, grace_minutes=0)) == 2


def test_export_csv(db, sample):
    content, media_type, filename = export_attendance(query_logs(db).all(), "csv")
    lines = content.decode("utf-8").splitlines()

    assert media_type == "text/csv"
    assert filename.endswith(".csv")
    assert lines[0] == ",".join(EXPORT_COLUMNS)
    assert len(lines) == 4
    assert sum("Warehouse" in line for line in lines[1:]) == 2


def test_export_xlsx(db, sample):
    content, _, filename = export_attendance(query_logs(db).all(), "XLSX")
    wb = openpyxl.load_workbook(io.BytesIO(content))
    ws = wb["Attendance"]

    assert filename.endswith(".xlsx")
    assert [c.value for c in ws[1]] == EXPORT_COLUMNS
    assert ws.max_row == 4


def test_export_pdf(db, sample):
    content, media_type, _ = export_attendance(query_logs(db).all(), "pdf", title="June <draft>")
    assert media_type == "application/pdf"
    assert content.startswith(b"%PDF")


def test_export_rejects_unknown_format(db):
    with pytest.raises(ValueError):
        export_attendance([], "docx")
