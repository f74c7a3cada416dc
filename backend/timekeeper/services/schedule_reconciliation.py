"""
Schedule reconciliation.

Periodic job: every pending/confirmed schedule whose shift has ended becomes
`completed` (a linked attendance log has both check-in and check-out) or
`no-show` (otherwise). Runs in two passes. The first pass only reads and
plans; the second applies each transition on its own commit, so one bad
schedule never blocks the others. Terminal schedules drop out of the status
filter, which makes re-runs no-ops.

reconcile_employee_date() is the on-demand variant used after a manual
check-in/check-out, and is the only path that sets `checked-in`.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timekeeper.core.exceptions import ReconciliationError
from timekeeper.models.attendance import AttendanceLog
from timekeeper.models.schedule import Schedule, ScheduleStatus
from timekeeper.services.time_parsing import local_now

logger = logging.getLogger(__name__)

OPEN_STATUSES = (ScheduleStatus.PENDING.value, ScheduleStatus.CONFIRMED.value)


@dataclass(frozen=True)
class PlannedTransition:
    schedule_id: int
    previous_status: str
    new_status: str
    reason: str


def shift_end(schedule: Schedule) -> datetime:
    """Wall-clock end of the shift.

    An end at or before the start belongs to the next day, so a 22:00-06:00
    shift is not closed as a no-show at 06:00 on the day it starts.
    """
    end = datetime.combine(schedule.date, schedule.end_time)
    if schedule.end_time <= schedule.start_time:
        end += timedelta(days=1)
    return end


def status_from_logs(logs: List[AttendanceLog]) -> Optional[Tuple[str, str]]:
    """Observed status for one schedule, or None when the logs say nothing."""
    if any(log.check_in_time and log.check_out_time for log in logs):
        return ScheduleStatus.COMPLETED.value, "Employee checked in and out successfully"
    if any(log.check_in_time for log in logs):
        return ScheduleStatus.CHECKED_IN.value, "Employee checked in but has not checked out yet"
    return None


class ScheduleReconciliationService:
    def __init__(self, db: Session):
        self.db = db

    # ── Periodic job ─────────────────────────────────────────────────

    def run(self, now: Optional[datetime] = None) -> dict:
        now = now or local_now()
        transitions = self.plan(now)
        applied = self.apply(transitions)
        logger.info(f"Reconciliation: {len(transitions)} planned, {len(applied)} applied")
        return {
            "updated": len(applied),
            "details": [{"id": t.schedule_id, "status": t.new_status} for t in applied],
        }

    def plan(self, now: datetime) -> List[PlannedTransition]:
        """Read-only pass: decide the outcome of every elapsed open schedule."""
        schedules = (
            self.db.query(Schedule)
            .filter(Schedule.status.in_(OPEN_STATUSES))
            .order_by(Schedule.date, Schedule.id)
            .all()
        )

        transitions = []
        for schedule in schedules:
            if not shift_end(schedule) < now:
                continue
            try:
                transitions.append(self._plan_one(schedule))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Skipping schedule {schedule.id}: attendance lookup failed: {e}", exc_info=True)
        return transitions

    def _plan_one(self, schedule: Schedule) -> PlannedTransition:
        attended = (
            self.db.query(AttendanceLog.id)
            .filter(
                AttendanceLog.schedule_id == schedule.id,
                AttendanceLog.check_in_time.isnot(None),
                AttendanceLog.check_out_time.isnot(None),
            )
            .first()
        )
        if attended:
            return PlannedTransition(
                schedule.id, schedule.status, ScheduleStatus.COMPLETED.value,
                "Employee checked in and out successfully",
            )
        return PlannedTransition(
            schedule.id, schedule.status, ScheduleStatus.NO_SHOW.value,
            "No attendance recorded for scheduled shift",
        )

    def apply(self, transitions: List[PlannedTransition]) -> List[PlannedTransition]:
        applied = []
        for t in transitions:
            try:
                self._apply_one(t, expected=OPEN_STATUSES)
                applied.append(t)
            except ReconciliationError as e:
                logger.warning(str(e))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to update schedule {t.schedule_id}: {e}", exc_info=True)
        return applied

    def _apply_one(self, t: PlannedTransition, expected=None):
        query = self.db.query(Schedule).filter(Schedule.id == t.schedule_id)
        if expected:
            # Someone else may have moved it since the plan was made
            query = query.filter(Schedule.status.in_(expected))
        updated = query.update(
            {
                Schedule.status: t.new_status,
                Schedule.status_updated_at: datetime.now(timezone.utc),
                Schedule.auto_computed: True,
            },
            synchronize_session="fetch",
        )
        if not updated:
            self.db.rollback()
            raise ReconciliationError(f"Schedule {t.schedule_id} changed before update, skipped")
        self.db.commit()
        logger.info(f"Schedule {t.schedule_id}: {t.previous_status} -> {t.new_status} ({t.reason})")

    # ── On demand ────────────────────────────────────────────────────

    def reconcile_employee_date(self, employee_id: int, day: date) -> List[PlannedTransition]:
        """Recompute one employee's schedules for one day from their attendance logs.

        Logs count for a schedule when linked to it, or when they belong to the
        same employee and date.
        """
        schedules = (
            self.db.query(Schedule)
            .filter(Schedule.employee_id == employee_id, Schedule.date == day)
            .all()
        )
        if not schedules:
            return []

        logs = (
            self.db.query(AttendanceLog)
            .filter(
                or_(
                    AttendanceLog.schedule_id.in_([s.id for s in schedules]),
                    (AttendanceLog.employee_id == employee_id) & (AttendanceLog.date == day),
                )
            )
            .all()
        )

        changed = []
        for schedule in schedules:
            relevant = [
                log for log in logs
                if log.schedule_id == schedule.id
                or (log.employee_id == schedule.employee_id and log.date == schedule.date)
            ]
            observed = status_from_logs(relevant)
            if observed is None or observed[0] == schedule.status:
                continue
            t = PlannedTransition(schedule.id, schedule.status, observed[0], observed[1])
            try:
                self._apply_one(t)
                changed.append(t)
            except ReconciliationError as e:
                logger.warning(str(e))
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to update schedule {schedule.id}: {e}", exc_info=True)
        return changed
