"""Calendar helpers used for period bucketing.

All bucketing is by calendar date; time of day never matters.
"""
import calendar
from datetime import date, datetime, timedelta


def local_naive(dt: datetime) -> datetime:
    """Timestamps are compared as naive local time; aware ones are converted."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone().replace(tzinfo=None)


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    return d.replace(day=days_in_month(d))


def days_in_month(d: date) -> int:
    return calendar.monthrange(d.year, d.month)[1]


def year_start(d: date) -> date:
    return date(d.year, 1, 1)


def week_start(d: date) -> date:
    """Most recent Sunday at or before ``d``."""
    # weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def add_months(d: date, months: int) -> date:
    """First day of the month ``months`` away from ``d``'s month."""
    index = d.year * 12 + (d.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def month_key(d: date) -> str:
    return f"{d.year}-{d.month:02d}"


def in_range(d: date, start: date, end: date) -> bool:
    return start <= d <= end


def months_between(start: date, end: date) -> int:
    """Whole months from ``start``'s month to ``end``'s month."""
    return (end.year - start.year) * 12 + (end.month - start.month)
