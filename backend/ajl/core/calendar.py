"""Calendar helpers: month lengths, due-day clamping, month arithmetic."""

import calendar
from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_due_day(year: int, month: int, due_day: int) -> int:
    """Clamp a 1-31 due day to the last day of the given month."""
    return min(max(1, due_day), days_in_month(year, month))


def due_date_for(year: int, month: int, due_day: int) -> date:
    return date(year, month, clamp_due_day(year, month, due_day))


def month_key(year: int, month: int) -> str:
    return f"{year}-{month:02d}"


def month_index(year: int, month: int) -> int:
    return year * 12 + (month - 1)


def first_of_month(year: int, month: int) -> date:
    return date(year, month, 1)


def in_month(value: date, year: int, month: int) -> bool:
    return value.year == year and value.month == month


def add_months(value: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the target month."""
    index = month_index(value.year, value.month) + months
    year, month0 = divmod(index, 12)
    month = month0 + 1
    return date(year, month, clamp_due_day(year, month, value.day))

