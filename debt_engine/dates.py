"""
Date Math Module

Calendar utilities used by interest accrual: whole-day differences,
month lengths, month-boundary walking and anchor-day cycle dates.
Time-of-day is always ignored.
"""

from datetime import date, datetime, timedelta
from typing import Iterator, Tuple, Union
import calendar

DateLike = Union[date, datetime]


def as_date(value: DateLike) -> date:
    """Normalize a date or datetime to a calendar date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"Expected date or datetime, got {type(value).__name__}")


def days_between(from_date: DateLike, to_date: DateLike) -> int:
    """
    Whole calendar days from from_date to to_date

    Returns 0 when to_date is on or before from_date.
    """
    days = (as_date(to_date) - as_date(from_date)).days
    return max(0, days)


def days_in_month(year: int, month: int) -> int:
    """Number of days in a calendar month (month is 1-12)"""
    return calendar.monthrange(year, month)[1]


def first_of_next_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


def month_segments(from_date: DateLike, to_date: DateLike) -> Iterator[Tuple[date, date, int]]:
    """
    Split the half-open range [from_date, to_date) at calendar month boundaries

    Yields:
        (segment_start, segment_end, days_in_that_month) with segment_end
        exclusive, so days_between(segment_start, segment_end) is the number
        of days of the range falling inside that month.
    """
    current = as_date(from_date)
    end = as_date(to_date)

    while current < end:
        boundary = first_of_next_month(current)
        segment_end = boundary if boundary < end else end
        yield current, segment_end, days_in_month(current.year, current.month)
        current = segment_end


def add_months(start_date: date, months: int) -> date:
    """Add months to a date, clamping the day to the target month's length"""
    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start_date.day, days_in_month(year, month))
    return date(year, month, day)


def anchor_date(year: int, month: int, anchor_day: int) -> date:
    """Cycle date for a month; anchor days past month end fall on the last day"""
    return date(year, month, min(anchor_day, days_in_month(year, month)))


def next_anchor_date(after: DateLike, anchor_day: int) -> date:
    """First anchor-day cycle date strictly after the given date"""
    d = as_date(after)
    candidate = anchor_date(d.year, d.month, anchor_day)
    if candidate > d:
        return candidate
    following = first_of_next_month(d)
    return anchor_date(following.year, following.month, anchor_day)


def add_days(d: DateLike, days: int) -> date:
    return as_date(d) + timedelta(days=days)
