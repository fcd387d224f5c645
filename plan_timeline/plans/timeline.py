"""Minute-of-day model for a single day's timeline.

Within a day, time is an integer minute in [0, 1440). The value 1440 is
only used as an end value and means "exactly at midnight", so a plan that
runs to the end of the day is distinguishable from a zero-length plan at the
next day's start.
"""

import math
from collections.abc import Iterable
from datetime import date, datetime, timedelta
from typing import Literal

from plan_timeline.config.settings import settings
from plan_timeline.plans.types import MINUTES_PER_DAY, MinuteInterval, Plan
from plan_timeline.utils.calendar import day_start

Rounding = Literal["down", "up", "nearest"]


def minute_of_day(value: datetime) -> int:
    """Return hour * 60 + minute of a datetime (seconds are ignored)."""
    return value.hour * 60 + value.minute


def end_minute_of_day(start: datetime, end: datetime) -> int:
    """Return the end minute of a block that starts at start.

    An end at midnight of a later day maps to 1440 instead of 0.
    """
    end_minute = minute_of_day(end)
    if end.date() > start.date() and end_minute == 0:
        return MINUTES_PER_DAY
    return end_minute


def plan_interval(plan: Plan) -> MinuteInterval:
    """Return the same-day minute interval occupied by a plan."""
    return MinuteInterval(
        minute_of_day(plan.start_time),
        end_minute_of_day(plan.start_time, plan.end_time),
    )


def time_on_day(day: date, minute: int) -> datetime:
    """Return the instant at a minute of day.

    The minute is clamped to [0, 1440]; 1440 yields the next day's midnight.
    """
    clamped = max(0, min(MINUTES_PER_DAY, minute))
    return day_start(day) + timedelta(minutes=clamped)


def snap_minute(raw_minutes: float, step: int | None = None, rounding: Rounding = "nearest") -> int:
    """Snap a raw (e.g. pointer-derived) minute to the step grid.

    Args:
        raw_minutes: Unsnapped minute value, possibly fractional
        step: Grid size in minutes (defaults to TIMELINE_MINUTE_STEP)
        rounding: "down", "up" or "nearest"

    Returns:
        Snapped minute clamped to [0, 1440]
    """
    step = step or settings.timeline_minute_step
    steps = raw_minutes / step
    if rounding == "down":
        snapped_steps = math.floor(steps)
    elif rounding == "up":
        snapped_steps = math.ceil(steps)
    else:
        snapped_steps = math.floor(steps + 0.5)
    return max(0, min(MINUTES_PER_DAY, int(snapped_steps) * step))


def snap_form_minute(raw_minutes: float) -> int:
    """Snap a minute typed or picked in the edit form to FORM_MINUTE_STEP."""
    return snap_minute(raw_minutes, settings.form_minute_step, "nearest")


def plans_on_day(
    plans: Iterable[Plan],
    day: date,
    exclude_id: str | None = None,
) -> list[MinuteInterval]:
    """Return the busy intervals of the plans that start on a day.

    Args:
        plans: Candidate plans (any days)
        day: Day whose timeline is being edited
        exclude_id: Plan to ignore, typically the one being edited

    Returns:
        Intervals ordered by start minute
    """
    intervals = [
        plan_interval(plan)
        for plan in plans
        if plan.day == day and plan.id != exclude_id
    ]
    return sorted(intervals, key=lambda interval: (interval.start, interval.end))


def occupied_at(minute: int, intervals: Iterable[MinuteInterval]) -> bool:
    """True if minute falls inside any busy interval."""
    return any(interval.contains(minute) for interval in intervals)


def format_minute(minute: int) -> str:
    """Format a minute of day as HH:MM; 1440 renders as 24:00."""
    if minute >= MINUTES_PER_DAY:
        return "24:00"
    return f"{minute // 60:02d}:{minute % 60:02d}"
