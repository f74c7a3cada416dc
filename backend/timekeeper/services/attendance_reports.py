"""Attendance summary, late-arrival report and CSV/Excel/PDF export."""
import io
import logging
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd
from sqlalchemy.orm import Session, joinedload

from timekeeper.core.config import settings
from timekeeper.models.attendance import AttendanceLog
from timekeeper.models.employee import Employee
from timekeeper.models.schedule import Schedule
from timekeeper.services.attendance_pdf import generate_attendance_pdf

logger = logging.getLogger(__name__)

EXPORT_FORMATS = ("csv", "xlsx", "pdf")

EXPORT_COLUMNS = [
    "Employee ID", "Employee Name", "Department", "Date", "Check In", "Check Out",
    "Total Hours", "Regular Hours", "Overtime Hours", "Approved OT", "Sunday Hours",
    "Overnight Hours", "Status", "Incomplete",
]


def query_logs(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    employee_ids: Optional[Sequence[int]] = None,
    department_id: Optional[int] = None,
    approval_status: Optional[str] = None,
):
    query = db.query(AttendanceLog).options(
        joinedload(AttendanceLog.employee).joinedload(Employee.department),
        joinedload(AttendanceLog.overtime_approval),
    )
    if start:
        query = query.filter(AttendanceLog.date >= start)
    if end:
        query = query.filter(AttendanceLog.date <= end)
    if employee_ids:
        query = query.filter(AttendanceLog.employee_id.in_(employee_ids))
    if department_id:
        query = query.join(Employee, AttendanceLog.employee_id == Employee.id).filter(
            Employee.department_id == department_id
        )
    if approval_status:
        query = query.filter(AttendanceLog.approval_status == approval_status)
    return query.order_by(AttendanceLog.date.desc(), AttendanceLog.check_in_time.desc())


def attendance_summary(logs: Iterable[AttendanceLog]) -> dict:
    """Totals across logs. Each checked-in log counts as one day worked."""
    summary = {
        "total_days_worked": 0,
        "total_hours_worked": 0.0,
        "total_overtime_hours": 0.0,
        "total_approved_overtime": 0.0,
        "total_sunday_hours": 0.0,
        "total_overnight_hours": 0.0,
        "total_employees": 0,
    }
    employees = set()
    for log in logs:
        employees.add(log.employee_id)
        if not log.check_in_time:
            continue
        summary["total_days_worked"] += 1
        summary["total_hours_worked"] += log.total_hours or 0
        summary["total_overtime_hours"] += max(log.raw_ot_hours or 0, 0)
        summary["total_approved_overtime"] += max(log.approved_ot_hours or 0, 0)
        if log.is_sunday:
            summary["total_sunday_hours"] += log.total_hours or 0
        if log.is_overnight:
            summary["total_overnight_hours"] += max(log.overnight_hours or 0, 0)
    summary["total_employees"] = len(employees)

    # Display rounding only; stored hours stay unrounded
    for key, value in summary.items():
        if isinstance(value, float):
            summary[key] = round(value, 2)
    return summary


def _expected_start(db: Session, log: AttendanceLog) -> Optional[Tuple[Schedule, datetime]]:
    schedule = log.schedule
    if schedule is None:
        schedule = (
            db.query(Schedule)
            .filter(Schedule.employee_id == log.employee_id, Schedule.date == log.date)
            .order_by(Schedule.start_time)
            .first()
        )
    if schedule is None:
        return None
    return schedule, datetime.combine(schedule.date, schedule.start_time)


def late_arrivals(
    db: Session,
    start: Optional[date] = None,
    end: Optional[date] = None,
    grace_minutes: Optional[int] = None,
) -> List[dict]:
    """Check-ins later than the scheduled start plus the grace period."""
    grace = settings.LATE_GRACE_MINUTES if grace_minutes is None else grace_minutes
    rows = []
    for log in query_logs(db, start, end).all():
        expected = _expected_start(db, log)
        if expected is None:
            continue
        schedule, start_at = expected
        if log.check_in_time <= start_at + timedelta(minutes=grace):
            continue
        rows.append({
            "attendance_id": log.id,
            "employee_id": log.employee_id,
            "employee_name": log.employee.name if log.employee else None,
            "external_id": log.employee.user_id if log.employee else None,
            "date": log.date.isoformat(),
            "schedule_id": schedule.id,
            "scheduled_start": schedule.start_time.strftime("%H:%M"),
            "check_in": log.check_in_time.strftime("%H:%M"),
            "minutes_late": int((log.check_in_time - start_at).total_seconds() / 60),
        })
    rows.sort(key=lambda r: (r["date"], -r["minutes_late"]))
    return rows


# ── Export ───────────────────────────────────────────────────────────

def export_rows(logs: Iterable[AttendanceLog]) -> List[dict]:
    rows = []
    for log in logs:
        employee = log.employee
        department = employee.department.name if employee and employee.department else ""
        rows.append({
            "Employee ID": employee.user_id if employee else "",
            "Employee Name": employee.name if employee else "",
            "Department": department,
            "Date": log.date.isoformat(),
            "Check In": log.check_in_time.strftime("%Y-%m-%d %H:%M") if log.check_in_time else "",
            "Check Out": log.check_out_time.strftime("%Y-%m-%d %H:%M") if log.check_out_time else "",
            "Total Hours": round(log.total_hours or 0, 2),
            "Regular Hours": round(log.regular_hours or 0, 2),
            "Overtime Hours": round(log.raw_ot_hours or 0, 2),
            "Approved OT": round(log.approved_ot_hours or 0, 2),
            "Sunday Hours": round(log.sunday_hours or 0, 2),
            "Overnight Hours": round(log.overnight_hours or 0, 2),
            "Status": log.approval_status,
            "Incomplete": "Yes" if log.is_incomplete else "No",
        })
    return rows


def export_attendance(logs: List[AttendanceLog], fmt: str, title: Optional[str] = None) -> Tuple[bytes, str, str]:
    """Returns (content, media type, filename)."""
    fmt = (fmt or "csv").lower()
    if fmt not in EXPORT_FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")

    stamp = datetime.utcnow().strftime("%Y%m%d")
    rows = export_rows(logs)
    logger.info(f"Exporting {len(rows)} attendance rows as {fmt}")

    if fmt == "pdf":
        content = generate_attendance_pdf(rows, attendance_summary(logs), title=title)
        return content, "application/pdf", f"attendance_{stamp}.pdf"

    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    if fmt == "csv":
        return df.to_csv(index=False).encode("utf-8"), "text/csv", f"attendance_{stamp}.csv"

    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="Attendance")
    return (
        buffer.getvalue(),
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        f"attendance_{stamp}.xlsx",
    )
