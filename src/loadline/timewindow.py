"""Day-boundary-safe date utilities.

Every other module does its calendar arithmetic through these helpers so that
time-of-day and timezone components never leak into day counts.
"""

from __future__ import annotations

import math
from collections.abc import Iterator
from datetime import date, datetime, time, timedelta, tzinfo

MONTHS_PER_YEAR = 12
DAYS_PER_WEEK = 7
END_OF_DAY = time(23, 59, 59, 999000)


def to_date(value: date | datetime) -> date:
    """Reduce a date or datetime to its calendar day."""
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date | datetime, end: date | datetime) -> int:
    """Return the inclusive number of calendar days an interval spans.

    The result is at least 1, so a task starting and ending on the same day
    spans one day. Order of the arguments does not matter.
    """
    delta = abs((to_date(end) - to_date(start)).days)
    return max(1, delta + 1)


def is_same_calendar_day(a: date | datetime, b: date | datetime) -> bool:
    """Compare year, month and day only."""
    return to_date(a) == to_date(b)


def end_of_day(day: date | datetime, tz: tzinfo | None = None) -> datetime:
    """Return 23:59:59.999 on the given calendar day."""
    return datetime.combine(to_date(day), END_OF_DAY, tzinfo=tz)


class DateRange:
    """An inclusive, restartable range of calendar days.

    Iterating twice yields the same sequence; no cursor is shared between
    iterations. An end before the start gives an empty range.
    """

    __slots__ = ("start", "end")

    def __init__(self, start: date | datetime, end: date | datetime) -> None:
        self.start = to_date(start)
        self.end = to_date(end)

    def __iter__(self) -> Iterator[date]:
        for offset in range(len(self)):
            yield self.start + timedelta(days=offset)

    def __len__(self) -> int:
        return max(0, (self.end - self.start).days + 1)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, date):
            return False
        return self.start <= to_date(item) <= self.end

    def __repr__(self) -> str:
        return f"DateRange({self.start.isoformat()}, {self.end.isoformat()})"

    def overlap(self, other: DateRange) -> DateRange:
        """Return the days shared with another range (possibly empty)."""
        return DateRange(max(self.start, other.start), min(self.end, other.end))


def iterate_days(start: date | datetime, end: date | datetime) -> DateRange:
    """Return the days from start to end inclusive as a restartable range."""
    return DateRange(start, end)


def week_key(day: date) -> str:
    """Week-of-month bucket key, e.g. '2025-07-W2' for 8-14 July."""
    return f"{day.year}-{day.month:02d}-W{math.ceil(day.day / DAYS_PER_WEEK)}"


def month_key(day: date) -> str:
    """Year-month bucket key, e.g. '2025-07'."""
    return f"{day.year}-{day.month:02d}"


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of a calendar month."""
    start = date(year, month, 1)
    if month == MONTHS_PER_YEAR:
        end = date(year, 12, 31)
    else:
        end = date(year, month + 1, 1) - timedelta(days=1)
    return (start, end)


def add_months(day: date, months: int) -> date:
    """Return the first day of the month `months` after the month of `day`."""
    index = day.year * MONTHS_PER_YEAR + (day.month - 1) + months
    return date(index // MONTHS_PER_YEAR, index % MONTHS_PER_YEAR + 1, 1)


def months_in_range(start: date, end: date) -> list[tuple[int, int]]:
    """Return (year, month) pairs touched by the inclusive range."""
    months: list[tuple[int, int]] = []
    current = date(start.year, start.month, 1)
    while current <= end:
        months.append((current.year, current.month))
        current = add_months(current, 1)
    return months
