"""Attendance log endpoints.

IMPORTANT: Specific path routes (summary, late-report, export, check-in,
check-out, bulk/*) must be defined BEFORE the catch-all /{attendance_id}
routes, otherwise FastAPI will try to match "summary" as an integer id.
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from timekeeper.core.database import get_db
from timekeeper.core.security import CurrentUser, get_current_user
from timekeeper.models.attendance import AttendanceLog
from timekeeper.schemas.attendance import (
    AttendanceOut, AttendanceSummary, BulkApproveRequest, BulkDeleteRequest,
    CheckInRequest, CheckOutRequest,
)
from timekeeper.services.attendance_reports import (
    EXPORT_FORMATS, attendance_summary, export_attendance, late_arrivals, query_logs,
)
from timekeeper.services.attendance_service import AttendanceService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/attendances", tags=["attendances"])


def _require_manager(user: CurrentUser):
    if user.role.lower() not in ("admin", "manager"):
        raise HTTPException(status_code=403, detail="Admin/Manager access required")


# ── Specific-path routes FIRST ───────────────────────────────────────

@router.get("", response_model=List[AttendanceOut])
def list_attendances(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_ids: Optional[List[int]] = Query(None),
    department_id: Optional[int] = None,
    approval_status: Optional[str] = None,
    limit: int = Query(500, ge=1, le=5000),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = query_logs(db, start_date, end_date, employee_ids, department_id, approval_status)
    return query.limit(limit).all()


@router.get("/summary", response_model=AttendanceSummary)
def get_summary(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_ids: Optional[List[int]] = Query(None),
    department_id: Optional[int] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    logs = query_logs(db, start_date, end_date, employee_ids, department_id).all()
    return attendance_summary(logs)


@router.get("/late-report")
def get_late_report(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    grace_minutes: Optional[int] = Query(None, ge=0),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Check-ins later than the scheduled start plus the grace period."""
    rows = late_arrivals(db, start_date, end_date, grace_minutes)
    return {"count": len(rows), "late_arrivals": rows}


@router.get("/export")
def export(
    format: str = Query("csv"),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    employee_ids: Optional[List[int]] = Query(None),
    department_id: Optional[int] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if format.lower() not in EXPORT_FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid format. Must be one of: {list(EXPORT_FORMATS)}",
        )
    logs = query_logs(db, start_date, end_date, employee_ids, department_id).all()

    title = "Attendance Report"
    if start_date or end_date:
        title += f" {start_date or ''} to {end_date or ''}".rstrip()
    content, media_type, filename = export_attendance(logs, format, title=title)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/check-in", response_model=AttendanceOut)
def check_in(
    body: CheckInRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return AttendanceService(db).check_in(body.employee_id, body.schedule_id, note=body.note)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/check-out", response_model=AttendanceOut)
def check_out(
    body: CheckOutRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    try:
        return AttendanceService(db).check_out(body.employee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/bulk/approve")
def bulk_approve(
    body: BulkApproveRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Approve overtime for the given attendance records."""
    _require_manager(current_user)
    count = AttendanceService(db).bulk_approve_overtime(
        body.ids, body.approved_hours, approved_by=current_user.id, note=body.note,
    )
    return {"success": True, "updated": count, "message": f"Approved overtime for {count} records"}


@router.post("/bulk/delete")
def bulk_delete(
    body: BulkDeleteRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_manager(current_user)
    count = AttendanceService(db).bulk_delete(body.ids)
    return {"success": True, "deleted": count, "message": f"Deleted {count} records"}


# ── Catch-all /{attendance_id} routes LAST ──────────────────────────

@router.get("/{attendance_id}", response_model=AttendanceOut)
def get_attendance(
    attendance_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    log = db.query(AttendanceLog).filter(AttendanceLog.id == attendance_id).first()
    if not log:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return log
