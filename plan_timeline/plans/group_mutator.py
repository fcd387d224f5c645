"""Group mutation of recurring plan occurrences.

Creates, edits and deletes the family of occurrences that share a group id.
Past occurrences are immutable: every delete or regeneration is floored at
the caller-supplied "today", so occurrences dated before it are never
removed or recreated.

A recurring series is a set of independent occurrences, not a rule plus
exceptions. Editing one occurrence without changing its repeat mode touches
only that occurrence.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager, nullcontext
from datetime import date, datetime, timedelta

from loguru import logger

from plan_timeline.config.settings import settings
from plan_timeline.plans.errors import GroupMutationError
from plan_timeline.plans.notifications import Notifier
from plan_timeline.plans.recurrence import expand
from plan_timeline.plans.repository import PlanRepository, TransactionalPlanRepository
from plan_timeline.plans.timeline import end_minute_of_day, minute_of_day, time_on_day
from plan_timeline.plans.types import (
    MinuteInterval,
    Plan,
    PlanFields,
    PlanTemplate,
    RepeatMode,
    new_id,
)


def template_from_plan(plan: Plan) -> PlanTemplate:
    """Build the template that regenerates siblings of an occurrence."""
    start_minute = minute_of_day(plan.start_time)
    return PlanTemplate(
        title=plan.title,
        note=plan.note,
        color=plan.color,
        notification_options=list(plan.notification_options),
        start_minute=start_minute,
        end_minute=start_minute + plan.duration_minutes,
    )


# Plan columns that accept None; a None for any other field means "leave as is"
_CLEARABLE_FIELDS = frozenset({"note"})


def apply_fields(occurrence: Plan, fields: PlanFields) -> Plan:
    """Apply explicitly set fields to an occurrence in place.

    An explicit None clears the note and is ignored for every other field.

    Raises:
        InvalidIntervalError: If the resulting minute interval is malformed
    """
    changes = {
        name: value
        for name, value in fields.model_dump(exclude_unset=True).items()
        if value is not None or name in _CLEARABLE_FIELDS
    }

    start_minute = changes.pop("start_minute", None)
    end_minute = changes.pop("end_minute", None)
    if start_minute is not None or end_minute is not None:
        if start_minute is None:
            start_minute = minute_of_day(occurrence.start_time)
        if end_minute is None:
            end_minute = end_minute_of_day(occurrence.start_time, occurrence.end_time)
        interval = MinuteInterval.checked(start_minute, end_minute)
        day = occurrence.day
        occurrence.start_time = time_on_day(day, interval.start)
        occurrence.end_time = time_on_day(day, interval.end)

    for name, value in changes.items():
        setattr(occurrence, name, value)
    return occurrence


class OccurrenceGroupMutator:
    """Orchestrates create/edit/delete of recurring occurrence groups.

    Repository failures propagate as GroupMutationError (chained to the
    original error); regenerate_group() is the retry path after a failed
    edit. Reminder failures are logged and never abort a mutation. Calls
    against one group must be serialised by the caller.
    """

    def __init__(
        self,
        repository: PlanRepository,
        notifier: Notifier,
        *,
        notifications_enabled: bool | None = None,
        clock: Callable[[], datetime] = datetime.now,
        id_factory: Callable[[], str] = new_id,
    ):
        """
        Args:
            repository: Plan persistence
            notifier: Reminder delivery
            notifications_enabled: Arm reminders on create/update
                (defaults to the NOTIFICATIONS_ENABLED setting)
            clock: Source of "now" for created_at/updated_at timestamps
            id_factory: Source of fresh occurrence/group ids
        """
        self._repository = repository
        self._notifier = notifier
        self._notifications_enabled = (
            settings.notifications_enabled if notifications_enabled is None else notifications_enabled
        )
        self._clock = clock
        self._id_factory = id_factory

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, template: PlanTemplate, anchor_day: date, rule: RepeatMode) -> list[Plan]:
        """Create one occurrence per expanded day of a rule.

        Args:
            template: Fields and time of day copied to every occurrence
            anchor_day: First occurrence's day
            rule: Repeat rule

        Returns:
            Created occurrences in day order

        Raises:
            GroupMutationError: If persisting any occurrence fails
        """
        rule = RepeatMode(rule)
        days = expand(anchor_day, rule)
        group_id = self._id_factory() if rule.is_recurring else None
        now = self._clock()

        plans = [self._build_occurrence(template, day, group_id, rule, now) for day in days]

        try:
            with self._unit_of_work():
                for plan in plans:
                    self._repository.create(plan)
        except Exception as exc:
            logger.error("Plan creation failed", group_id=group_id, count=len(plans), error=repr(exc))
            raise GroupMutationError("create_occurrences", group_id=group_id, cause=exc) from exc

        for plan in plans:
            self._arm(plan)

        logger.info(
            "Created plan occurrences",
            group_id=group_id,
            rule=rule.value,
            anchor_day=anchor_day.isoformat(),
            count=len(plans),
        )
        return plans

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def edit_and_propagate(
        self,
        occurrence: Plan,
        new_fields: PlanFields | None,
        new_rule: RepeatMode,
        today: date,
    ) -> Plan:
        """Edit one occurrence and reconcile its group with the new rule.

        Flow:
        1. Apply fields and rule in place and persist the occurrence (always)
        2. Rule is none: delete group siblings dated >= today and detach
        3. Rule unchanged and already grouped: stop, siblings untouched
        4. Otherwise, as one unit of work: delete siblings dated >=
           max(today, occurrence day) and recreate them from the new rule

        Args:
            occurrence: Existing occurrence, mutated in place
            new_fields: Field edits (None keeps every field)
            new_rule: Repeat rule after the edit
            today: Current-day boundary; nothing dated before it is touched

        Returns:
            The edited occurrence

        Raises:
            InvalidIntervalError: If new_fields describe a malformed interval
            GroupMutationError: If a repository call fails; step 1 may already
                be persisted, so retry with regenerate_group()
        """
        new_rule = RepeatMode(new_rule)
        previous_rule = occurrence.repeat_mode
        previous_group_id = occurrence.group_id

        if new_fields is not None:
            apply_fields(occurrence, new_fields)
        occurrence.repeat_mode = new_rule
        occurrence.updated_at = self._clock()

        # Step 1
        with self._stage("update_occurrence", previous_group_id, occurrence.id):
            self._repository.update(occurrence)
        self._rearm(occurrence)

        # Step 2
        if new_rule is RepeatMode.NONE:
            if previous_group_id is not None:
                self._detach(occurrence, today)
            return occurrence

        # Step 3
        if new_rule == previous_rule and previous_group_id is not None:
            logger.debug("Repeat mode unchanged, siblings left as-is", plan_id=occurrence.id)
            return occurrence

        # Step 4
        self._regenerate_siblings(occurrence, new_rule, today, is_new_group=previous_group_id is None)
        return occurrence

    def regenerate_group(self, occurrence: Plan, today: date) -> list[Plan]:
        """Rebuild an occurrence's group from its persisted repeat mode.

        This is the retry path after edit_and_propagate raised
        GroupMutationError: step 1 already stored the new repeat mode, so
        calling edit_and_propagate again would see an unchanged rule and stop.
        Siblings dated >= max(today, occurrence day) are always recomputed, so
        calling this on an already consistent group is harmless.

        Args:
            occurrence: Occurrence as persisted (its repeat_mode is the target rule)
            today: Current-day boundary; nothing dated before it is touched

        Returns:
            Newly created siblings (empty when the rule is none)

        Raises:
            GroupMutationError: If a repository call fails
        """
        rule = RepeatMode(occurrence.repeat_mode)
        if rule is RepeatMode.NONE:
            if occurrence.group_id is not None:
                self._detach(occurrence, today)
            return []
        return self._regenerate_siblings(occurrence, rule, today, is_new_group=occurrence.group_id is None)

    def _detach(self, occurrence: Plan, today: date) -> None:
        group_id = occurrence.group_id
        self.delete_group_forward(group_id, today, excluding_id=occurrence.id)
        occurrence.group_id = None
        with self._stage("detach_occurrence", group_id, occurrence.id):
            self._repository.update(occurrence)
        logger.info("Detached occurrence from group", plan_id=occurrence.id, group_id=group_id)

    def _regenerate_siblings(
        self,
        occurrence: Plan,
        rule: RepeatMode,
        today: date,
        is_new_group: bool,
    ) -> list[Plan]:
        group_id = occurrence.group_id or self._id_factory()
        occurrence.group_id = group_id

        anchor_day = occurrence.day
        regen_floor = max(today, anchor_day)
        template = template_from_plan(occurrence)
        now = self._clock()
        siblings = [
            self._build_occurrence(template, day, group_id, rule, now)
            for day in expand(anchor_day, rule, horizon_floor=regen_floor)
            if day != anchor_day
        ]

        transactional = isinstance(self._repository, TransactionalPlanRepository)
        removed_ids: list[str] = []
        stage = "assign_group"
        try:
            with self._unit_of_work():
                if is_new_group:
                    self._repository.update(occurrence)
                stage = "delete_siblings"
                removed_ids = self._repository.delete_in_group(group_id, regen_floor, excluding_id=occurrence.id)
                stage = "create_siblings"
                for sibling in siblings:
                    self._repository.create(sibling)
        except Exception as exc:
            logger.error(
                "Group regeneration failed",
                group_id=group_id,
                plan_id=occurrence.id,
                stage=stage,
                transactional=transactional,
                error=repr(exc),
            )
            if not transactional:
                # Deletes already applied; their reminders must not fire
                for plan_id in removed_ids:
                    self._disarm(plan_id)
            raise GroupMutationError(stage, group_id=group_id, plan_id=occurrence.id, cause=exc) from exc

        for plan_id in removed_ids:
            self._disarm(plan_id)
        for sibling in siblings:
            self._arm(sibling)

        logger.info(
            "Regenerated group siblings",
            group_id=group_id,
            plan_id=occurrence.id,
            rule=rule.value,
            regen_floor=regen_floor.isoformat(),
            removed_count=len(removed_ids),
            created_count=len(siblings),
        )
        return siblings

    # ------------------------------------------------------------------
    # Delete / toggle
    # ------------------------------------------------------------------

    def delete_single(self, occurrence: Plan) -> None:
        """Delete one occurrence and cancel its reminders."""
        with self._stage("delete_occurrence", occurrence.group_id, occurrence.id):
            self._repository.delete(occurrence.id)
        self._disarm(occurrence.id)
        logger.info("Deleted occurrence", plan_id=occurrence.id, group_id=occurrence.group_id)

    def delete_group_forward(
        self,
        group_id: str,
        from_date: date,
        excluding_id: str | None = None,
    ) -> list[str]:
        """Delete every occurrence of a group dated >= from_date.

        Args:
            group_id: Group to delete from
            from_date: Earliest day removed; earlier occurrences survive
            excluding_id: Occurrence to keep

        Returns:
            Ids of the removed occurrences
        """
        with self._stage("delete_siblings", group_id, excluding_id):
            removed_ids = self._repository.delete_in_group(group_id, from_date, excluding_id=excluding_id)
        for plan_id in removed_ids:
            self._disarm(plan_id)
        return removed_ids

    def delete_group(self, group_id: str) -> list[str]:
        """Delete a whole group, history included ("delete all repeats")."""
        return self.delete_group_forward(group_id, date.min)

    def toggle_completion(self, occurrence: Plan) -> Plan:
        """Flip an occurrence's completion state and re-arm its reminders."""
        occurrence.is_completed = not occurrence.is_completed
        occurrence.updated_at = self._clock()
        with self._stage("update_occurrence", occurrence.group_id, occurrence.id):
            self._repository.update(occurrence)
        self._rearm(occurrence)
        return occurrence

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _build_occurrence(
        self,
        template: PlanTemplate,
        day: date,
        group_id: str | None,
        rule: RepeatMode,
        now: datetime,
    ) -> Plan:
        start_time = time_on_day(day, template.start_minute)
        return Plan(
            id=self._id_factory(),
            group_id=group_id,
            title=template.title,
            note=template.note,
            color=template.color,
            notification_options=list(template.notification_options),
            start_time=start_time,
            end_time=start_time + timedelta(minutes=template.duration_minutes),
            repeat_mode=rule,
            is_completed=False,
            created_at=now,
            updated_at=now,
        )

    def _unit_of_work(self):
        if isinstance(self._repository, TransactionalPlanRepository):
            return self._repository.unit_of_work()
        return nullcontext()

    @contextmanager
    def _stage(self, stage: str, group_id: str | None, plan_id: str | None) -> Iterator[None]:
        try:
            yield
        except Exception as exc:
            logger.error("Repository call failed", stage=stage, group_id=group_id, plan_id=plan_id, error=repr(exc))
            raise GroupMutationError(stage, group_id=group_id, plan_id=plan_id, cause=exc) from exc

    def _arm(self, plan: Plan) -> None:
        if not self._notifications_enabled or plan.is_completed:
            return
        try:
            self._notifier.schedule(plan)
        except Exception as exc:
            logger.warning("Failed to schedule reminders", plan_id=plan.id, error=repr(exc))

    def _disarm(self, plan_id: str) -> None:
        try:
            self._notifier.cancel(plan_id)
        except Exception as exc:
            logger.warning("Failed to cancel reminders", plan_id=plan_id, error=repr(exc))

    def _rearm(self, plan: Plan) -> None:
        self._disarm(plan.id)
        self._arm(plan)
