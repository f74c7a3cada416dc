"""Match external employee ids from an upload to Employee rows.

Unknown ids are auto-created when AUTO_CREATE_EMPLOYEES is on. Lookups and
inserts run in batches of EMPLOYEE_BATCH_SIZE so one upload costs one SELECT
per batch rather than one per row.
"""
import enum
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from timekeeper.core.config import settings
from timekeeper.core.exceptions import ResolutionError, RowError, storage_message
from timekeeper.models.employee import Department, Employee, EmployeeStatus

logger = logging.getLogger(__name__)


class MatchStrategy(str, enum.Enum):
    BADGE_ID = "badge_id"
    USER_ID = "user_id"
    # Case-insensitive exact name. Device exports carry no birth date, so the
    # DOB half of the key is never available at import time.
    NAME_DOB = "name_dob"


@dataclass
class UniqueEmployee:
    employee_id: str
    name: str
    department: Optional[str] = None
    source_rows: List[int] = field(default_factory=list)


@dataclass
class ResolutionResult:
    employee_map: Dict[str, int] = field(default_factory=dict)  # external id -> Employee.id
    created: int = 0
    matched: int = 0
    errors: List[RowError] = field(default_factory=list)

    def fail(self, emp: UniqueEmployee, message: str):
        self.errors.extend(RowError(row, message) for row in emp.source_rows)


def extract_unique_employees(entries: Iterable) -> List[UniqueEmployee]:
    """One record per external id: longest name wins, first department wins."""
    unique: Dict[str, UniqueEmployee] = {}
    for entry in entries:
        existing = unique.get(entry.employee_id)
        if existing is None:
            unique[entry.employee_id] = UniqueEmployee(
                employee_id=entry.employee_id,
                name=entry.employee_name,
                department=entry.department,
                source_rows=[entry.source_row],
            )
            continue
        existing.source_rows.append(entry.source_row)
        if len(entry.employee_name or "") > len(existing.name or ""):
            existing.name = entry.employee_name
        if entry.department and not existing.department:
            existing.department = entry.department
    return list(unique.values())


class EmployeeResolver:
    def __init__(
        self,
        db: Session,
        strategy: Optional[MatchStrategy] = None,
        auto_create: Optional[bool] = None,
        batch_size: Optional[int] = None,
    ):
        self.db = db
        self.strategy = MatchStrategy(strategy or settings.EMPLOYEE_MATCH_STRATEGY)
        self.auto_create = settings.AUTO_CREATE_EMPLOYEES if auto_create is None else auto_create
        self.batch_size = batch_size or settings.EMPLOYEE_BATCH_SIZE
        self._departments: Dict[str, int] = {}

    def resolve(self, entries: Iterable) -> ResolutionResult:
        result = ResolutionResult()
        employees = extract_unique_employees(entries)
        logger.info(f"Resolving {len(employees)} unique employees ({self.strategy.value})")

        for start in range(0, len(employees), self.batch_size):
            batch = employees[start:start + self.batch_size]
            try:
                self._process_batch(batch, result)
            except SQLAlchemyError as e:
                logger.error(f"Employee batch at offset {start} failed: {e}", exc_info=True)
                for emp in batch:
                    if emp.employee_id not in result.employee_map:
                        result.fail(emp, f"Batch processing failed: {storage_message(e)}")

        logger.info(
            f"Employee resolution complete: {result.created} created, "
            f"{result.matched} matched, {len(result.errors)} row errors"
        )
        return result

    # ── Lookup ───────────────────────────────────────────────────────

    def _key_column(self):
        if self.strategy == MatchStrategy.BADGE_ID:
            return Employee.badge_id
        return Employee.user_id

    def _lookup(self, batch: List[UniqueEmployee]) -> Dict[str, int]:
        if self.strategy == MatchStrategy.NAME_DOB:
            names = {emp.name.strip().lower(): emp.employee_id for emp in batch if emp.name}
            rows = (
                self.db.query(Employee.id, Employee.name)
                .filter(func.lower(Employee.name).in_(list(names)))
                .all()
            )
            found = {}
            for emp_id, name in rows:
                external = names.get((name or "").strip().lower())
                if external and external not in found:
                    found[external] = emp_id
            return found

        column = self._key_column()
        rows = (
            self.db.query(Employee.id, column)
            .filter(column.in_([emp.employee_id for emp in batch]))
            .all()
        )
        return {key: emp_id for emp_id, key in rows if key}

    def _fetch_existing(self, emp: UniqueEmployee) -> Optional[Employee]:
        if self.strategy == MatchStrategy.BADGE_ID:
            return self.db.query(Employee).filter(Employee.badge_id == emp.employee_id).first()
        return self.db.query(Employee).filter(Employee.user_id == emp.employee_id).first()

    # ── Batch processing ─────────────────────────────────────────────

    def _process_batch(self, batch: List[UniqueEmployee], result: ResolutionResult):
        existing = self._lookup(batch)
        to_create: List[UniqueEmployee] = []

        for emp in batch:
            if emp.employee_id in existing:
                result.matched += 1
                result.employee_map[emp.employee_id] = existing[emp.employee_id]
            elif self.auto_create:
                to_create.append(emp)
            else:
                result.fail(emp, f"Employee {emp.employee_id} ({emp.name}) not found in system")

        if to_create:
            self._create_batch(to_create, result)

    def _build(self, emp: UniqueEmployee) -> Employee:
        employee = Employee(
            user_id=emp.employee_id,
            name=emp.name or "Unknown",
            status=EmployeeStatus.ACTIVE.value,
            department_id=self._department_id(emp.department),
        )
        if self.strategy == MatchStrategy.BADGE_ID:
            employee.badge_id = emp.employee_id
        return employee

    def _create_batch(self, to_create: List[UniqueEmployee], result: ResolutionResult):
        logger.info(f"Creating {len(to_create)} new employees")
        staged = [self._build(emp) for emp in to_create]
        try:
            with self.db.begin_nested():
                self.db.add_all(staged)
                self.db.flush()
        except IntegrityError:
            logger.warning("Unique constraint hit on employee batch insert, retrying one by one")
            self._create_individually(to_create, result)
            return
        except SQLAlchemyError as e:
            logger.error(f"Employee batch insert failed: {e}", exc_info=True)
            for emp in to_create:
                result.fail(emp, f"Failed to create employee {emp.employee_id}: {storage_message(e)}")
            return

        for emp, employee in zip(to_create, staged):
            result.employee_map[emp.employee_id] = employee.id
            result.created += 1

    def _create_individually(self, to_create: List[UniqueEmployee], result: ResolutionResult):
        for emp in to_create:
            try:
                employee = self._build(emp)
                with self.db.begin_nested():
                    self.db.add(employee)
                    self.db.flush()
                result.employee_map[emp.employee_id] = employee.id
                result.created += 1
            except IntegrityError:
                # Another upload created it first
                logger.info(f"Employee {emp.employee_id} already exists, fetching")
                found = self._fetch_existing(emp)
                if found is None:
                    result.fail(emp, f"Employee {emp.employee_id} constraint violation and fetch failed")
                    continue
                result.employee_map[emp.employee_id] = found.id
                result.matched += 1
            except SQLAlchemyError as e:
                logger.error(f"Creating employee {emp.employee_id} failed: {e}", exc_info=True)
                result.fail(emp, str(ResolutionError(
                    f"Failed to create employee {emp.employee_id}: {storage_message(e)}"
                )))

    def _department_id(self, label: Optional[str]) -> Optional[int]:
        if not label:
            return None
        label = label.strip()
        if label in self._departments:
            return self._departments[label]

        dept = self.db.query(Department).filter(Department.name == label).first()
        if dept is None:
            try:
                with self.db.begin_nested():
                    dept = Department(name=label)
                    self.db.add(dept)
                    self.db.flush()
            except IntegrityError:
                dept = self.db.query(Department).filter(Department.name == label).first()
        self._departments[label] = dept.id if dept else None
        return self._departments[label]


