"""Recurrence expansion.

Expands a repeat rule anchored at a day into the concrete, ascending set of
occurrence days. Recurrence is always bounded by a horizon:

- daily, weekdays, weekly, monthly: December 31 of the anchor's year
- weekly_in_current_week: Sunday of the anchor's Monday-start week
- monthly_in_current_month: last day of the anchor's month

Pure functions only: no clock, no I/O.
"""

from datetime import date

from plan_timeline.plans.types import RepeatMode
from plan_timeline.utils.calendar import (
    add_months,
    is_weekday,
    iter_days,
    month_end,
    week_end,
    year_end,
)


def horizon_for(anchor_day: date, rule: RepeatMode) -> date:
    """Return the last day (inclusive) a rule anchored at anchor_day may reach.

    Args:
        anchor_day: Day the rule is anchored at
        rule: Repeat rule

    Returns:
        Horizon day. For RepeatMode.NONE the anchor itself.
    """
    rule = RepeatMode(rule)
    if rule is RepeatMode.NONE:
        return anchor_day
    if rule is RepeatMode.WEEKLY_IN_CURRENT_WEEK:
        return week_end(anchor_day)
    if rule is RepeatMode.MONTHLY_IN_CURRENT_MONTH:
        return month_end(anchor_day)
    return year_end(anchor_day)


def _monthly_days(anchor_day: date, horizon: date) -> list[date]:
    # Months without the anchor's day of month are skipped, never shifted.
    days: list[date] = []
    offset = 0
    while True:
        candidate = add_months(anchor_day, offset)
        if candidate > horizon:
            break
        if candidate.day == anchor_day.day:
            days.append(candidate)
        offset += 1
    return days


def expand(
    anchor_day: date,
    rule: RepeatMode,
    horizon_floor: date | None = None,
) -> list[date]:
    """Expand a repeat rule into its occurrence days.

    Rules:
    - none: [anchor_day]
    - daily, weekly_in_current_week, monthly_in_current_month: every day from
      anchor_day to the horizon
    - weekdays: every Monday-Friday from anchor_day to the horizon
    - weekly: anchor_day + 7k up to the horizon
    - monthly: anchor_day + k months, only in months that have the anchor's
      day of month

    Args:
        anchor_day: Day the rule is anchored at
        rule: Repeat rule
        horizon_floor: Optional earliest day to return (used when only the
            future part of a series is regenerated)

    Returns:
        Ascending list of distinct days
    """
    rule = RepeatMode(rule)
    horizon = horizon_for(anchor_day, rule)

    if rule is RepeatMode.NONE:
        days = [anchor_day]
    elif rule is RepeatMode.WEEKDAYS:
        days = [d for d in iter_days(anchor_day, horizon) if is_weekday(d)]
    elif rule is RepeatMode.WEEKLY:
        days = list(iter_days(anchor_day, horizon, step_days=7))
    elif rule is RepeatMode.MONTHLY:
        days = _monthly_days(anchor_day, horizon)
    else:
        # daily, weekly_in_current_week, monthly_in_current_month
        days = list(iter_days(anchor_day, horizon))

    if horizon_floor is not None:
        days = [d for d in days if d >= horizon_floor]

    return days
