"""Manual attendance actions: check-in, check-out, overtime approval, delete."""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from timekeeper.models.attendance import ApprovalStatus, AttendanceLog, OvertimeApproval
from timekeeper.models.employee import Employee
from timekeeper.models.schedule import Schedule
from timekeeper.services.attendance_metrics import compute_metrics
from timekeeper.services.schedule_reconciliation import ScheduleReconciliationService
from timekeeper.services.time_parsing import local_now

logger = logging.getLogger(__name__)


def _minute(moment: datetime) -> datetime:
    return moment.replace(second=0, microsecond=0)


class AttendanceService:
    def __init__(self, db: Session):
        self.db = db
        self.reconciler = ScheduleReconciliationService(db)

    def check_in(self, employee_id: int, schedule_id: Optional[int] = None,
                 now: Optional[datetime] = None, note: Optional[str] = None) -> AttendanceLog:
        """Open an attendance log. One open log per schedule (or per day without one)."""
        now = _minute(now or local_now())
        employee = self.db.query(Employee).filter(Employee.id == employee_id).first()
        if not employee:
            raise ValueError("Employee not found")

        if schedule_id is not None:
            schedule = self.db.query(Schedule).filter(Schedule.id == schedule_id).first()
            if not schedule or schedule.employee_id != employee_id:
                raise ValueError("Schedule not found for this employee")
        else:
            todays = (
                self.db.query(Schedule)
                .filter(Schedule.employee_id == employee_id, Schedule.date == now.date())
                .all()
            )
            schedule = todays[0] if len(todays) == 1 else None

        open_log = self.db.query(AttendanceLog).filter(
            AttendanceLog.employee_id == employee_id,
            AttendanceLog.check_out_time.is_(None),
        )
        if schedule is not None:
            open_log = open_log.filter(AttendanceLog.schedule_id == schedule.id)
        else:
            open_log = open_log.filter(AttendanceLog.date == now.date())
        if open_log.first():
            raise ValueError("Already checked in. Check out first.")

        log = AttendanceLog(
            employee_id=employee_id,
            schedule_id=schedule.id if schedule else None,
            date=now.date(),
            check_in_time=now,
            is_sunday=now.date().weekday() == 6,
            is_incomplete=True,
            approval_status=ApprovalStatus.PENDING.value,
            notes=note or "Manual check-in",
            uploaded_at=datetime.now(timezone.utc),
        )
        self.db.add(log)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ValueError("Attendance already recorded for this minute")
        self.db.refresh(log)

        logger.info(f"Employee {employee_id} checked in at {now:%Y-%m-%d %H:%M} (log {log.id})")
        self.reconciler.reconcile_employee_date(employee_id, log.date)
        return log

    def check_out(self, employee_id: int, now: Optional[datetime] = None) -> AttendanceLog:
        """Close the latest open log and fill in its hours. Check-out is set once."""
        now = _minute(now or local_now())
        log = (
            self.db.query(AttendanceLog)
            .filter(
                AttendanceLog.employee_id == employee_id,
                AttendanceLog.check_out_time.is_(None),
            )
            .order_by(AttendanceLog.check_in_time.desc())
            .first()
        )
        if not log:
            raise ValueError("No open check-in found")
        if now <= log.check_in_time:
            raise ValueError("Check-out must be after check-in")

        metrics = compute_metrics(
            log.check_in_time.strftime("%H:%M"), now.strftime("%H:%M"), log.date
        )
        log.check_out_time = now
        log.total_hours = metrics.total_hours
        log.regular_hours = metrics.regular_hours
        log.raw_ot_hours = metrics.overtime_hours
        log.sunday_hours = metrics.sunday_hours
        log.overnight_hours = metrics.overnight_hours
        log.is_sunday = metrics.is_sunday
        log.is_overnight = metrics.is_overnight
        log.is_incomplete = False
        self.db.commit()
        self.db.refresh(log)

        logger.info(f"Employee {employee_id} checked out at {now:%Y-%m-%d %H:%M} (log {log.id})")
        self.reconciler.reconcile_employee_date(employee_id, log.date)
        return log

    def bulk_approve_overtime(self, record_ids: List[int], approved_hours: Optional[float] = None,
                              approved_by: Optional[str] = None, note: Optional[str] = None) -> int:
        """Record approved overtime per log. Without approved_hours the raw overtime is approved."""
        logs = self.db.query(AttendanceLog).filter(AttendanceLog.id.in_(record_ids)).all()
        for log in logs:
            hours = (log.raw_ot_hours or 0) if approved_hours is None else approved_hours
            approval = log.overtime_approval
            if approval is None:
                approval = OvertimeApproval()
                log.overtime_approval = approval
            approval.approved_hours = hours
            approval.status = ApprovalStatus.APPROVED.value
            approval.approved_by = approved_by
            approval.approved_at = datetime.now(timezone.utc)
            approval.note = note

            log.approved_ot_hours = hours
            log.approval_status = ApprovalStatus.APPROVED.value

        self.db.commit()
        logger.info(f"Overtime approved for {len(logs)} attendance records by {approved_by}")
        return len(logs)

    def bulk_delete(self, record_ids: List[int]) -> int:
        logs = self.db.query(AttendanceLog).filter(AttendanceLog.id.in_(record_ids)).all()
        for log in logs:
            self.db.delete(log)
        self.db.commit()
        logger.info(f"Deleted {len(logs)} attendance records")
        return len(logs)
