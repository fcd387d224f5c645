"""Plans module - recurring plan scheduling on a 24-hour timeline.

This module provides:
- Recurrence expansion bounded by a horizon
- Minute-of-day conflict checks and drag clamping
- Group mutation of recurring occurrences that never touches history
- Repository and notifier contracts with SQLAlchemy / in-process implementations
"""

from plan_timeline.plans.conflicts import (
    Selection,
    clamp_cursor,
    clamp_selection,
    conflicts,
    is_valid_selection,
    overlaps,
    require_valid_selection,
    update_selection,
)
from plan_timeline.plans.errors import (
    GroupMutationError,
    InvalidIntervalError,
    PlanNotFoundError,
    PlanSchedulingError,
    SelectionConflictError,
)
from plan_timeline.plans.group_mutator import OccurrenceGroupMutator
from plan_timeline.plans.notifications import Notifier, ReminderScheduler
from plan_timeline.plans.recurrence import expand, horizon_for
from plan_timeline.plans.repository import PlanRepository, SqlPlanRepository
from plan_timeline.plans.types import (
    DateRange,
    MinuteInterval,
    NotificationOption,
    Plan,
    PlanColor,
    PlanFields,
    PlanTemplate,
    RepeatMode,
)

__all__ = [
    "DateRange",
    "GroupMutationError",
    "InvalidIntervalError",
    "MinuteInterval",
    "NotificationOption",
    "Notifier",
    "OccurrenceGroupMutator",
    "Plan",
    "PlanColor",
    "PlanFields",
    "PlanNotFoundError",
    "PlanRepository",
    "PlanSchedulingError",
    "PlanTemplate",
    "ReminderScheduler",
    "RepeatMode",
    "Selection",
    "SelectionConflictError",
    "SqlPlanRepository",
    "clamp_cursor",
    "clamp_selection",
    "conflicts",
    "expand",
    "horizon_for",
    "is_valid_selection",
    "overlaps",
    "require_valid_selection",
    "update_selection",
]
