"""Batch insert of validated attendance rows.

Each chunk of ATTENDANCE_BATCH_SIZE rows goes in under its own SAVEPOINT, so
a failed chunk rolls back alone and chunks already written stay written.
Rows are linked to the schedule of the same employee and day when there is
exactly one; schedule status itself is left to the reconciliation job.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timekeeper.core.config import settings
from timekeeper.core.exceptions import DuplicateEntry, PersistenceError, RowError, storage_message
from timekeeper.models.attendance import ApprovalStatus, AttendanceLog
from timekeeper.models.schedule import Schedule
from timekeeper.services.attendance_metrics import compute_metrics
from timekeeper.services.record_parser import TimeLogEntry
from timekeeper.services.time_parsing import combine, to_date

logger = logging.getLogger(__name__)


@dataclass
class WriteResult:
    processed: int = 0
    errored: int = 0
    duplicates: int = 0
    errors: List[RowError] = field(default_factory=list)
    duplicate_errors: List[RowError] = field(default_factory=list)


def build_log(
    entry: TimeLogEntry,
    employee_id: int,
    upload_id: Optional[int] = None,
    uploaded_by: Optional[str] = None,
    uploaded_at: Optional[datetime] = None,
    schedule_id: Optional[int] = None,
) -> AttendanceLog:
    """TimeLogEntry + internal employee id → unsaved AttendanceLog with metrics."""
    uploaded_at = uploaded_at or datetime.now(timezone.utc)
    metrics = compute_metrics(entry.time_in, entry.time_out, entry.date)

    check_in = combine(entry.date, entry.time_in)
    check_out = None
    if entry.time_out:
        out_date = to_date(entry.date)
        if metrics.is_overnight:
            out_date += timedelta(days=1)
        check_out = combine(out_date, entry.time_out)

    return AttendanceLog(
        employee_id=employee_id,
        schedule_id=schedule_id,
        date=to_date(entry.date),
        check_in_time=check_in,
        check_out_time=check_out,
        total_hours=metrics.total_hours,
        regular_hours=metrics.regular_hours,
        raw_ot_hours=metrics.overtime_hours,
        approved_ot_hours=0,
        sunday_hours=metrics.sunday_hours,
        overnight_hours=metrics.overnight_hours,
        is_sunday=metrics.is_sunday,
        is_overnight=metrics.is_overnight,
        is_incomplete=metrics.is_incomplete,
        approval_status=ApprovalStatus.PENDING.value,
        notes=f"Uploaded from file at {uploaded_at.isoformat()}",
        upload_id=upload_id,
        uploaded_by=uploaded_by,
        uploaded_at=uploaded_at,
    )


class AttendanceWriter:
    def __init__(self, db: Session, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.ATTENDANCE_BATCH_SIZE

    def write(
        self,
        entries: Iterable[TimeLogEntry],
        employee_map: Dict[str, int],
        upload_id: Optional[int] = None,
        uploaded_by: Optional[str] = None,
    ) -> WriteResult:
        result = WriteResult()
        uploaded_at = datetime.now(timezone.utc)
        entries = list(entries)

        for start in range(0, len(entries), self.batch_size):
            chunk = entries[start:start + self.batch_size]
            links = self.schedule_links(chunk, employee_map)
            logs = []
            for e in chunk:
                emp_id = employee_map[e.employee_id]
                logs.append(build_log(
                    e, emp_id, upload_id, uploaded_by, uploaded_at,
                    schedule_id=links.get((emp_id, to_date(e.date))),
                ))
            self._write_chunk(chunk, logs, result, start // self.batch_size + 1)

        logger.info(
            f"Attendance write complete: {result.processed} inserted, "
            f"{result.duplicates} duplicates, {result.errored} errors"
        )
        return result

    def schedule_links(self, chunk: List[TimeLogEntry], employee_map: Dict[str, int]) -> Dict[Tuple[int, date], int]:
        """(employee, date) → schedule id, for days with exactly one schedule."""
        employee_ids = {employee_map[e.employee_id] for e in chunk}
        dates = {to_date(e.date) for e in chunk}
        rows = (
            self.db.query(Schedule.id, Schedule.employee_id, Schedule.date)
            .filter(Schedule.employee_id.in_(employee_ids), Schedule.date.in_(dates))
            .all()
        )
        found: Dict[Tuple[int, date], List[int]] = {}
        for schedule_id, emp_id, day in rows:
            found.setdefault((emp_id, day), []).append(schedule_id)
        return {key: ids[0] for key, ids in found.items() if len(ids) == 1}

    def _write_chunk(self, chunk: List[TimeLogEntry], logs: List[AttendanceLog],
                     result: WriteResult, number: int):
        try:
            with self.db.begin_nested():
                self.db.add_all(logs)
                self.db.flush()
        except IntegrityError:
            logger.warning(f"Chunk {number}: unique constraint hit, inserting rows one by one")
            self._write_individually(chunk, logs, result)
            return
        except SQLAlchemyError as e:
            logger.error(f"Chunk {number}: insert failed: {e}", exc_info=True)
            error = PersistenceError(f"Failed to save attendance record: {storage_message(e)}")
            result.errored += len(chunk)
            result.errors.extend(RowError(entry.source_row, str(error)) for entry in chunk)
            return

        result.processed += len(logs)
        logger.info(f"Chunk {number}: inserted {len(logs)} attendance rows")

    def _write_individually(self, chunk: List[TimeLogEntry], logs: List[AttendanceLog],
                            result: WriteResult):
        for entry, log in zip(chunk, logs):
            # Rolled-back objects are detached from the failed savepoint; rebuild.
            fresh = build_log(entry, log.employee_id, log.upload_id, log.uploaded_by,
                              log.uploaded_at, schedule_id=log.schedule_id)
            try:
                with self.db.begin_nested():
                    self.db.add(fresh)
                    self.db.flush()
                result.processed += 1
            except IntegrityError:
                error = DuplicateEntry(
                    f"Attendance for employee {entry.employee_id} at "
                    f"{fresh.check_in_time:%Y-%m-%d %H:%M} already exists"
                )
                result.duplicates += 1
                result.duplicate_errors.append(RowError(entry.source_row, str(error)))
            except SQLAlchemyError as e:
                logger.error(f"Row {entry.source_row}: insert failed: {e}", exc_info=True)
                result.errored += 1
                result.errors.append(RowError(
                    entry.source_row, str(PersistenceError(f"Failed to save attendance record: {storage_message(e)}"))
                ))
