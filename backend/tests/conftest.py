import io
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("TIMEZONE", "UTC")

from datetime import date, datetime, time

import openpyxl
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import timekeeper.models  # noqa: F401
from timekeeper.core.database import Base, enable_sqlite_savepoints, get_db
from timekeeper.core.security import create_access_token
from timekeeper.models.employee import Employee
from timekeeper.models.schedule import Schedule


engine = enable_sqlite_savepoints(create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
))
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed clock for everything date-sensitive
NOW = datetime(2024, 6, 20, 12, 0)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    from timekeeper.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan would create tables on the app engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    token = create_access_token({"sub": "hr-admin", "email": "hr@example.com", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def staff_headers():
    token = create_access_token({"sub": "clerk", "role": "staff"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_employee(db):
    def _make(user_id="EMP001", name="Ana Santos", **kwargs):
        employee = Employee(user_id=user_id, name=name, **kwargs)
        db.add(employee)
        db.commit()
        db.refresh(employee)
        return employee
    return _make


@pytest.fixture
def make_schedule(db):
    def _make(employee, day=date(2024, 6, 10), start=time(8, 0), end=time(17, 0), status="pending"):
        schedule = Schedule(
            employee_id=employee.id, date=day, start_time=start, end_time=end, status=status,
        )
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule
    return _make


def csv_bytes(*lines) -> bytes:
    return ("\n".join(lines) + "\n").encode("utf-8")


def xlsx_bytes(rows) -> bytes:
    """Build a workbook in memory; rows is a list of lists of cell values."""
    wb = openpyxl.Workbook()
    ws = wb.active
    for row in rows:
        ws.append(list(row))
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def biometric_xlsx(blocks, start="2024-06-01", end="2024-06-30") -> bytes:
    """Device export layout: period in B2/B3, headers on row 5.

    blocks: list of (employee_no, employee_name, [(date, in, out), ...]).
    The employee is only printed on the first row of its block.
    """
    rows = [
        ["Attendance Report"],
        ["Start Date", start],
        ["End Date", end],
        ["Generated", "Biometric Device 01"],
        ["Employee No.", "Employee Name", "Date", "Day", "IN", "OUT", "IN", "OUT"],
    ]
    for employee_no, name, days in blocks:
        for i, (day, time_in, time_out) in enumerate(days):
            rows.append([
                employee_no if i == 0 else None,
                name if i == 0 else None,
                day, None, time_in, None, None, time_out,
            ])
    return xlsx_bytes(rows)
