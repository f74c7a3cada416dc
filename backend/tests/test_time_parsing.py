from datetime import date, datetime, time

import pytest

from timekeeper.core.exceptions import InvalidDate, InvalidTime
from timekeeper.services.time_parsing import (
    combine, is_date_string, is_time_string, standardize_date, standardize_time,
    time_to_minutes,
)


@pytest.mark.parametrize("raw, expected", [
    ("2024-06-10", "2024-06-10"),
    ("06/10/2024", "2024-06-10"),
    ("6/1/2024", "2024-06-01"),
    ("06-10-2024", "2024-06-10"),
    ("2024/06/10", "2024-06-10"),
    ("2024-06-10 00:00:00", "2024-06-10"),
    ("2024-06-10T08:30:00", "2024-06-10"),
    ("45453", "2024-06-10"),
    (45453, "2024-06-10"),
    (date(2024, 6, 10), "2024-06-10"),
    (datetime(2024, 6, 10, 8, 0), "2024-06-10"),
])
def test_standardize_date(raw, expected):
    assert standardize_date(raw) == expected


def test_day_first_dates_fall_back_when_month_is_out_of_range():
    assert standardize_date("25/06/2024") == "2024-06-25"


def test_month_day_needs_report_year():
    assert standardize_date("06-10", default_year=2024) == "2024-06-10"
    with pytest.raises(InvalidDate):
        standardize_date("06-10")


@pytest.mark.parametrize("raw", ["", None, "not a date", "2024-13-45", "13/45/2024"])
def test_standardize_date_rejects(raw):
    with pytest.raises(InvalidDate):
        standardize_date(raw)


@pytest.mark.parametrize("raw, expected", [
    ("08:00", "08:00"),
    ("8:05", "08:05"),
    ("08:00:59", "08:00"),
    ("8:30 AM", "08:30"),
    ("8:30PM", "20:30"),
    ("12:15 AM", "00:15"),
    ("12:15 PM", "12:15"),
    ("0830", "08:30"),
    ("930", "09:30"),
    (0.5, "12:00"),
    ("0.75", "18:00"),
    (time(22, 0), "22:00"),
    (datetime(2024, 6, 10, 6, 45), "06:45"),
])
def test_standardize_time(raw, expected):
    assert standardize_time(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "25:00", "08:61", "13:00 PM", "noon", "1.5"])
def test_standardize_time_rejects(raw):
    with pytest.raises(InvalidTime):
        standardize_time(raw)


def test_invalid_errors_carry_the_value():
    with pytest.raises(InvalidTime) as exc:
        standardize_time("99:99")
    assert exc.value.value == "99:99"
    assert "99:99" in str(exc.value)


def test_cell_shape_predicates():
    assert is_date_string("6/10/2024")
    assert is_date_string("2024-06-10")
    assert not is_date_string("1001")
    assert is_time_string("08:00")
    assert is_time_string("8:00 pm")
    assert not is_time_string("2024-06-10")


def test_time_to_minutes_and_combine():
    assert time_to_minutes("22:30") == 22 * 60 + 30
    assert time_to_minutes("bad") is None
    assert combine("2024-06-10", "08:15") == datetime(2024, 6, 10, 8, 15)
