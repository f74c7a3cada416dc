from timekeeper.models.employee import Department, Employee
from timekeeper.services.employee_resolver import (
    EmployeeResolver, MatchStrategy, extract_unique_employees,
)
from timekeeper.services.record_parser import TimeLogEntry


def entry(employee_id, name, row, department=None):
    return TimeLogEntry(employee_id, name, "2024-06-10", "08:00", "17:00", department, row)


def test_extract_unique_employees_prefers_longest_name():
    unique = extract_unique_employees([
        entry("1001", "Ana", 1),
        entry("1001", "Ana Santos", 2, department="Warehouse"),
        entry("1002", "Ben Cruz", 3),
    ])
    assert [(u.employee_id, u.name, u.department, u.source_rows) for u in unique] == [
        ("1001", "Ana Santos", "Warehouse", [1, 2]),
        ("1002", "Ben Cruz", None, [3]),
    ]


def test_matches_existing_and_creates_missing(db, make_employee):
    ana = make_employee("1001", "Ana Santos")
    resolver = EmployeeResolver(db, auto_create=True, batch_size=2)
    result = resolver.resolve([
        entry("1001", "Ana Santos", 1),
        entry("1002", "Ben Cruz", 2, department="Warehouse"),
        entry("1003", "Cora Lim", 3, department="Warehouse"),
    ])

    assert result.matched == 1
    assert result.created == 2
    assert result.employee_map["1001"] == ana.id
    ben = db.query(Employee).filter(Employee.user_id == "1002").one()
    assert result.employee_map["1002"] == ben.id
    assert ben.department.name == "Warehouse"
    # One department row shared by both new employees
    assert db.query(Department).count() == 1


def test_unknown_employee_without_auto_create(db):
    result = EmployeeResolver(db, auto_create=False).resolve([
        entry("1009", "Nobody", 4),
        entry("1009", "Nobody", 7),
    ])
    assert result.employee_map == {}
    assert [str(e) for e in result.errors] == [
        "Row 4: Employee 1009 (Nobody) not found in system",
        "Row 7: Employee 1009 (Nobody) not found in system",
    ]


def test_badge_strategy(db, make_employee):
    ana = make_employee(user_id="X-1", name="Ana Santos", badge_id="B77")
    result = EmployeeResolver(db, strategy=MatchStrategy.BADGE_ID, auto_create=False).resolve([
        entry("B77", "Ana Santos", 1),
    ])
    assert result.employee_map == {"B77": ana.id}


def test_name_strategy_is_case_insensitive(db, make_employee):
    ana = make_employee(user_id="X-1", name="Ana Santos")
    result = EmployeeResolver(db, strategy=MatchStrategy.NAME_DOB, auto_create=False).resolve([
        entry("1001", "ANA SANTOS", 1),
    ])
    assert result.employee_map == {"1001": ana.id}


def test_conflicting_insert_counts_as_match(db, make_employee):
    resolver = EmployeeResolver(db, auto_create=True)
    # Someone else creates the employee between lookup and insert
    resolver._lookup = lambda batch: {}
    existing = make_employee("1001", "Ana Santos")

    result = resolver.resolve([entry("1001", "Ana Santos", 1), entry("1002", "Ben Cruz", 2)])

    assert result.employee_map["1001"] == existing.id
    assert result.matched == 1
    assert result.created == 1
    assert not result.errors
