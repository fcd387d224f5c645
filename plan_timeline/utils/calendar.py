"""Calendar arithmetic primitives.

Week boundaries are Monday-Sunday (ISO week). Month arithmetic preserves
the day of month where the target month has it and otherwise falls back to
the target month's last day. Nothing here reads locale or calendar settings,
so results are identical on every platform.
"""

import calendar
from datetime import date, datetime, time, timedelta


def start_of_day(value: date | datetime) -> date:
    """Return the calendar day of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def day_start(d: date) -> datetime:
    """Return midnight (00:00) at the start of d."""
    return datetime.combine(d, time.min)


def add_days(d: date, days: int) -> date:
    """Return d shifted by a whole number of days."""
    return d + timedelta(days=days)


def days_in_month(year: int, month: int) -> int:
    """Return the number of days in the given month."""
    return calendar.monthrange(year, month)[1]


def add_months(d: date, months: int) -> date:
    """Advance d by a number of calendar months.

    The day of month is preserved when the target month has it; otherwise the
    result is the target month's last day (Jan 31 + 1 month -> Feb 28/29).
    Callers that must not shift (monthly recurrence) compare the resulting
    day with the original one.
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    day = min(d.day, days_in_month(year, month))
    return date(year, month, day)


def week_start(d: date) -> date:
    """Return Monday of the calendar week containing d."""
    return d - timedelta(days=d.weekday())


def week_end(d: date) -> date:
    """Return Sunday of the calendar week containing d."""
    return week_start(d) + timedelta(days=6)


def month_start(d: date) -> date:
    """Return the first day of the month containing d."""
    return d.replace(day=1)


def month_end(d: date) -> date:
    """Return the last day of the month containing d."""
    return d.replace(day=days_in_month(d.year, d.month))


def year_end(d: date) -> date:
    """Return December 31 of d's year."""
    return date(d.year, 12, 31)


def is_weekday(d: date) -> bool:
    """True for Monday-Friday."""
    return d.weekday() < 5


def iter_days(start: date, end: date, step_days: int = 1):
    """Yield days from start to end inclusive, step_days apart."""
    current = start
    step = timedelta(days=step_days)
    while current <= end:
        yield current
        current += step
