"""Plan reminders.

Notifier is the contract the group mutator depends on. ReminderScheduler is
an in-process implementation that keeps pending reminders keyed by
identifier, so re-scheduling a plan replaces its previous reminders.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from loguru import logger

from plan_timeline.plans.types import NotificationOption, Plan

REMINDER_TITLE = "Plan reminder"


@runtime_checkable
class Notifier(Protocol):
    """Reminder delivery contract.

    schedule() arms reminders relative to the plan and no-ops for triggers
    already in the past; implementations own their notion of "now".
    """

    def schedule(self, plan: Plan) -> None: ...

    def cancel(self, plan_id: str) -> None: ...


@dataclass(frozen=True)
class Reminder:
    """One pending reminder for one plan option."""

    identifier: str
    plan_id: str
    option: NotificationOption
    trigger_at: datetime
    title: str
    body: str


def reminder_identifier(plan_id: str, option: NotificationOption) -> str:
    return f"plan.{plan_id}.{option.value}"


def trigger_time(plan: Plan, option: NotificationOption) -> datetime:
    """Return when a reminder option fires for a plan."""
    if option is NotificationOption.START_MINUS_5:
        return plan.start_time - timedelta(minutes=5)
    if option is NotificationOption.START_MINUS_10:
        return plan.start_time - timedelta(minutes=10)
    return plan.end_time


def reminder_body(plan: Plan, option: NotificationOption) -> str:
    if option is NotificationOption.START_MINUS_5:
        return f"Your plan \"{plan.title}\" starts in 5 minutes."
    if option is NotificationOption.START_MINUS_10:
        return f"Your plan \"{plan.title}\" starts in 10 minutes."
    return f"Your plan \"{plan.title}\" has ended. Don't forget to check it off if you finished it."


class ReminderScheduler:
    """In-process reminder registry implementing Notifier."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        """
        Args:
            clock: Source of "now"; triggers not after it are never armed
        """
        self._clock = clock
        self._pending: dict[str, Reminder] = {}

    def schedule(self, plan: Plan) -> None:
        """Arm one reminder per option of a plan.

        Options whose trigger is not after the clock's now are skipped.
        Scheduling the same plan again replaces reminders with the same
        identifier.
        """
        now = self._clock()
        armed = 0
        for option in plan.notification_options:
            trigger_at = trigger_time(plan, option)
            if trigger_at <= now:
                continue
            identifier = reminder_identifier(plan.id, option)
            self._pending[identifier] = Reminder(
                identifier=identifier,
                plan_id=plan.id,
                option=option,
                trigger_at=trigger_at,
                title=REMINDER_TITLE,
                body=reminder_body(plan, option),
            )
            armed += 1
        logger.debug("Reminders scheduled", plan_id=plan.id, armed=armed)

    def cancel(self, plan_id: str) -> None:
        """Remove every pending reminder of a plan, whatever its options."""
        for option in NotificationOption:
            self._pending.pop(reminder_identifier(plan_id, option), None)

    def cancel_all(self) -> None:
        self._pending.clear()

    def pending(self) -> list[Reminder]:
        """Pending reminders ordered by trigger time."""
        return sorted(self._pending.values(), key=lambda reminder: (reminder.trigger_at, reminder.identifier))

    def pending_for(self, plan_id: str) -> list[Reminder]:
        return [reminder for reminder in self.pending() if reminder.plan_id == plan_id]

    def due(self, now: datetime) -> list[Reminder]:
        """Pop and return reminders whose trigger time has been reached."""
        fired = [reminder for reminder in self.pending() if reminder.trigger_at <= now]
        for reminder in fired:
            del self._pending[reminder.identifier]
        return fired
