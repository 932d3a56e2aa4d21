"""Core tests: calendar helpers."""

from datetime import date

from ajl.core.calendar import (
    add_months,
    clamp_due_day,
    days_in_month,
    due_date_for,
    month_key,
)


def test_days_in_month_handles_leap_years():
    assert days_in_month(2024, 2) == 29
    assert days_in_month(2025, 2) == 28
    assert days_in_month(2025, 4) == 30
    assert days_in_month(2025, 12) == 31


def test_due_day_clamps_to_last_day():
    """Due day 31 lands on the last day of short months."""
    assert due_date_for(2025, 2, 31) == date(2025, 2, 28)
    assert due_date_for(2024, 2, 31) == date(2024, 2, 29)
    assert due_date_for(2025, 4, 31) == date(2025, 4, 30)
    assert due_date_for(2025, 1, 31) == date(2025, 1, 31)


def test_clamp_due_day_lower_bound():
    assert clamp_due_day(2025, 6, 0) == 1


def test_month_key_is_zero_padded():
    assert month_key(2026, 3) == "2026-03"


def test_add_months_rolls_year_and_clamps_day():
    assert add_months(date(2025, 11, 15), 3) == date(2026, 2, 15)
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2025, 12, 31), 12) == date(2026, 12, 31)

