from datetime import date, datetime, time

from timekeeper.models.attendance import AttendanceLog
from timekeeper.services.attendance_writer import AttendanceWriter, build_log
from timekeeper.services.record_parser import TimeLogEntry


def entry(day="2024-06-10", time_in="08:00", time_out="17:00", row=1, employee_id="1001"):
    return TimeLogEntry(employee_id, "Ana Santos", day, time_in, time_out, None, row)


def test_build_log_overnight_checkout_is_next_day():
    log = build_log(entry(time_in="22:00", time_out="06:00"), employee_id=1, upload_id=3)
    assert log.check_in_time == datetime(2024, 6, 10, 22, 0)
    assert log.check_out_time == datetime(2024, 6, 11, 6, 0)
    assert log.is_overnight
    assert log.total_hours == 8
    assert log.approval_status == "pending"
    assert log.notes.startswith("Uploaded from file at ")


def test_build_log_without_checkout():
    log = build_log(entry(time_out=None), employee_id=1)
    assert log.check_out_time is None
    assert log.is_incomplete
    assert log.total_hours == 0


def test_write_in_batches(db, make_employee):
    ana = make_employee()
    entries = [entry(day=f"2024-06-{d:02d}", row=d) for d in range(1, 8)]
    result = AttendanceWriter(db, batch_size=3).write(entries, {"1001": ana.id}, uploaded_by="hr")
    db.commit()

    assert result.processed == 7
    assert result.errors == []
    assert db.query(AttendanceLog).count() == 7


def test_unique_conflict_falls_back_to_row_inserts(db, make_employee):
    ana = make_employee()
    db.add(AttendanceLog(employee_id=ana.id, date=date(2024, 6, 2),
                         check_in_time=datetime(2024, 6, 2, 8, 0)))
    db.commit()

    entries = [entry(day=f"2024-06-{d:02d}", row=d) for d in range(1, 5)]
    result = AttendanceWriter(db, batch_size=10).write(entries, {"1001": ana.id})
    db.commit()

    assert result.processed == 3
    assert result.duplicates == 1
    assert result.duplicate_errors[0].row == 2
    assert db.query(AttendanceLog).count() == 4


def test_links_the_only_schedule_of_the_day(db, make_employee, make_schedule):
    ana = make_employee()
    linked = make_schedule(ana, day=date(2024, 6, 10))
    make_schedule(ana, day=date(2024, 6, 11), start=time(6, 0), end=time(10, 0))
    make_schedule(ana, day=date(2024, 6, 11), start=time(14, 0), end=time(18, 0))

    AttendanceWriter(db).write(
        [entry(day="2024-06-10", row=1), entry(day="2024-06-11", row=2)], {"1001": ana.id},
    )
    db.commit()

    logs = {log.date: log for log in db.query(AttendanceLog).all()}
    assert logs[date(2024, 6, 10)].schedule_id == linked.id
    assert logs[date(2024, 6, 11)].schedule_id is None
