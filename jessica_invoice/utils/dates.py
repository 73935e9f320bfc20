"""Calendar helpers for period boundaries."""

import calendar
from datetime import datetime, timedelta


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def start_of_week(value: datetime) -> datetime:
    """Monday 00:00 of the ISO week containing ``value``."""
    return start_of_day(value) - timedelta(days=value.weekday())


def start_of_month(value: datetime) -> datetime:
    return start_of_day(value).replace(day=1)


def start_of_quarter(value: datetime) -> datetime:
    first_month = 3 * ((value.month - 1) // 3) + 1
    return start_of_month(value).replace(month=first_month)


def start_of_year(value: datetime) -> datetime:
    return start_of_month(value).replace(month=1)


def add_months(value: datetime, months: int) -> datetime:
    """
    Shift ``value`` by a number of calendar months.

    The day is clamped to the last day of the target month, so
    31 January + 1 month is 28/29 February.
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def add_years(value: datetime, years: int) -> datetime:
    return add_months(value, 12 * years)


def is_same_month(first: datetime, second: datetime) -> bool:
    return first.year == second.year and first.month == second.month
