import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from timekeeper.core.database import get_db
from timekeeper.core.security import CurrentUser, get_current_user
from timekeeper.models.employee import Employee
from timekeeper.models.schedule import Schedule
from timekeeper.schemas.schedule import (
    ReconcileResult, ScheduleCreate, ScheduleOut, ScheduleStatusUpdate,
)
from timekeeper.services.schedule_reconciliation import ScheduleReconciliationService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["schedules"])


@router.get("/api/schedules", response_model=List[ScheduleOut])
def list_schedules(
    employee_id: Optional[int] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: Optional[str] = None,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(Schedule)
    if employee_id:
        query = query.filter(Schedule.employee_id == employee_id)
    if start_date:
        query = query.filter(Schedule.date >= start_date)
    if end_date:
        query = query.filter(Schedule.date <= end_date)
    if status:
        query = query.filter(Schedule.status == status)
    return query.order_by(Schedule.date, Schedule.start_time).all()


@router.post("/api/schedules", response_model=ScheduleOut, status_code=201)
def create_schedule(
    body: ScheduleCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    employee = db.query(Employee).filter(Employee.id == body.employee_id).first()
    if not employee:
        raise HTTPException(status_code=400, detail="Employee not found")

    schedule = Schedule(
        employee_id=body.employee_id,
        shift_type_id=body.shift_type_id,
        date=body.date,
        start_time=body.start_time,
        end_time=body.end_time,
        location=body.location,
        status=body.status.value,
    )
    db.add(schedule)
    db.commit()
    db.refresh(schedule)
    return schedule


@router.post("/api/schedules/{schedule_id}/status", response_model=ScheduleOut)
def update_schedule_status(
    schedule_id: int,
    body: ScheduleStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Manual status override. Clears the auto_computed flag."""
    if current_user.role.lower() not in ("admin", "manager"):
        raise HTTPException(status_code=403, detail="Admin/Manager access required")

    schedule = db.query(Schedule).filter(Schedule.id == schedule_id).first()
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")

    schedule.status = body.status.value
    schedule.status_updated_at = datetime.now(timezone.utc)
    schedule.auto_computed = False
    db.commit()
    db.refresh(schedule)
    logger.info(f"Schedule {schedule_id} set to {schedule.status} by {current_user.id}")
    return schedule


@router.post("/api/cron/update-schedule", response_model=ReconcileResult)
def run_schedule_reconciliation(
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Trigger for external schedulers; same work as the celery beat entry."""
    return ScheduleReconciliationService(db).run()
