"""Domain types for plans on a 24-hour timeline.

A Plan is one concrete occurrence on one calendar day. Recurring plans are
a set of independent occurrences that share a group_id; there is no stored
rule-plus-exceptions model.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum

from loguru import logger
from pydantic import BaseModel, Field, field_validator, model_validator

from plan_timeline.config.settings import settings
from plan_timeline.plans.errors import InvalidIntervalError

MINUTES_PER_DAY = 24 * 60


def new_id() -> str:
    """Return a fresh occurrence/group identifier."""
    return str(uuid.uuid4())


class RepeatMode(str, Enum):
    """Recurrence rule of a plan.

    WEEKLY_IN_CURRENT_WEEK and MONTHLY_IN_CURRENT_MONTH repeat every day until
    the end of the current week/month; they are not weekly/monthly spaced.
    """

    NONE = "none"
    DAILY = "daily"
    WEEKDAYS = "weekdays"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    WEEKLY_IN_CURRENT_WEEK = "weekly_in_current_week"
    MONTHLY_IN_CURRENT_MONTH = "monthly_in_current_month"

    @property
    def is_recurring(self) -> bool:
        return self is not RepeatMode.NONE


class PlanColor(str, Enum):
    GREEN = "green"
    RED = "red"
    PURPLE = "purple"
    YELLOW = "yellow"
    TEAL = "teal"
    BLUE = "blue"
    ORANGE = "orange"
    PINK = "pink"
    BROWN = "brown"


class NotificationOption(str, Enum):
    """Reminder trigger relative to a plan."""

    START_MINUS_5 = "start_minus_5"
    START_MINUS_10 = "start_minus_10"
    END_TIME = "end_time"

    @property
    def sort_order(self) -> int:
        return _NOTIFICATION_SORT_ORDER[self]


_NOTIFICATION_SORT_ORDER = {
    NotificationOption.START_MINUS_10: 0,
    NotificationOption.START_MINUS_5: 1,
    NotificationOption.END_TIME: 2,
}


def normalize_notification_options(options) -> list[NotificationOption]:
    """De-duplicate options and order them by trigger."""
    unique = {NotificationOption(option) for option in options}
    return sorted(unique, key=lambda option: option.sort_order)


def parse_notification_options(raw: str | None) -> list[NotificationOption]:
    """Decode a comma-separated option string.

    NULL (rows written before reminders existed) means end_time only, an
    empty string means no reminders. Unknown values are dropped; if nothing
    valid remains the end_time default applies.
    """
    if raw is None:
        return [NotificationOption.END_TIME]
    if raw == "":
        return []
    options = []
    for value in raw.split(","):
        try:
            options.append(NotificationOption(value.strip()))
        except ValueError:
            logger.debug("Dropping unknown notification option", option=value)
    if not options:
        return [NotificationOption.END_TIME]
    return normalize_notification_options(options)


def format_notification_options(options: list[NotificationOption]) -> str:
    """Encode options as a comma-separated string ("" when empty)."""
    return ",".join(option.value for option in normalize_notification_options(options))


def default_notification_options() -> list[NotificationOption]:
    """Options given to new plan templates (DEFAULT_NOTIFICATION_OPTIONS)."""
    return parse_notification_options(settings.default_notification_options)


@dataclass(frozen=True)
class MinuteInterval:
    """Half-open same-day interval [start, end) in minutes since midnight.

    end may be 1440 to mean "runs until midnight". Construction does not
    validate; use checked() at input boundaries.
    """

    start: int
    end: int

    @classmethod
    def checked(cls, start: int, end: int) -> "MinuteInterval":
        """Build an interval, enforcing 0 <= start < end <= 1440.

        Raises:
            InvalidIntervalError: If the bounds are reversed, empty or off-day
        """
        if not 0 <= start < end <= MINUTES_PER_DAY:
            raise InvalidIntervalError(f"Invalid minute interval [{start}, {end})")
        return cls(start, end)

    @property
    def duration(self) -> int:
        return self.end - self.start

    def contains(self, minute: int) -> bool:
        return self.start <= minute < self.end


@dataclass(frozen=True)
class DateRange:
    """Inclusive range of calendar days, used for repository fetches."""

    first_day: date
    last_day: date

    @property
    def start(self) -> datetime:
        return datetime.combine(self.first_day, time.min)

    @property
    def end(self) -> datetime:
        return datetime.combine(self.last_day, time.max)

    @classmethod
    def single_day(cls, day: date) -> "DateRange":
        return cls(day, day)


class Plan(BaseModel):
    """One concrete scheduled block on one calendar day.

    Attributes:
        id: Stable occurrence identifier
        group_id: Identifier shared by occurrences of one recurring definition
        title: Plan title
        note: Optional free-text note
        color: Colour tag
        notification_options: Reminder triggers, de-duplicated and ordered
        start_time: Start instant
        end_time: End instant, same day or exactly the next midnight
        repeat_mode: Recurrence rule the occurrence was created/edited with
        is_completed: Check-off state, independent per occurrence
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    id: str = Field(default_factory=new_id)
    group_id: str | None = None
    title: str
    note: str | None = None
    color: PlanColor = PlanColor.GREEN
    notification_options: list[NotificationOption] = Field(
        default_factory=lambda: [NotificationOption.END_TIME]
    )
    start_time: datetime
    end_time: datetime
    repeat_mode: RepeatMode = RepeatMode.NONE
    is_completed: bool = False
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)

    @field_validator("notification_options")
    @classmethod
    def _normalize_options(cls, value: list[NotificationOption]) -> list[NotificationOption]:
        return normalize_notification_options(value)

    @model_validator(mode="after")
    def _check_times(self) -> "Plan":
        if self.start_time >= self.end_time:
            raise ValueError(f"start_time ({self.start_time}) must be before end_time ({self.end_time})")
        next_midnight = datetime.combine(self.day + timedelta(days=1), time.min)
        if self.end_time.date() != self.day and self.end_time != next_midnight:
            raise ValueError(f"end_time ({self.end_time}) must be on {self.day} or exactly at the next midnight")
        return self

    @property
    def day(self) -> date:
        """Calendar day the occurrence belongs to."""
        return self.start_time.date()

    @property
    def duration_minutes(self) -> int:
        return int((self.end_time - self.start_time).total_seconds() // 60)


class PlanTemplate(BaseModel):
    """Fields copied to every occurrence created from one definition.

    Times are minutes since midnight; end_minute may be 1440.
    """

    title: str
    note: str | None = None
    color: PlanColor = PlanColor.GREEN
    notification_options: list[NotificationOption] = Field(default_factory=default_notification_options)
    start_minute: int
    end_minute: int

    @field_validator("notification_options")
    @classmethod
    def _normalize_options(cls, value: list[NotificationOption]) -> list[NotificationOption]:
        return normalize_notification_options(value)

    @model_validator(mode="after")
    def _check_minutes(self) -> "PlanTemplate":
        MinuteInterval.checked(self.start_minute, self.end_minute)
        return self

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute


class PlanFields(BaseModel):
    """Field edits applied to one existing occurrence.

    Only explicitly set fields are applied; None clears the note and leaves
    every other field untouched. start_minute/end_minute move the block
    within its own day.
    """

    title: str | None = None
    note: str | None = None
    color: PlanColor | None = None
    notification_options: list[NotificationOption] | None = None
    start_minute: int | None = None
    end_minute: int | None = None

    @field_validator("notification_options")
    @classmethod
    def _normalize_options(cls, value: list[NotificationOption] | None) -> list[NotificationOption] | None:
        if value is None:
            return None
        return normalize_notification_options(value)
