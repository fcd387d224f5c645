"""Plan repository: persistence of plan occurrences.

PlanRepository is the contract the group mutator depends on.
SqlPlanRepository implements it on SQLAlchemy and supports grouping several
calls into one unit of work (one session, one commit).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Generator
from contextlib import AbstractContextManager, contextmanager
from datetime import date, datetime, time
from typing import Protocol, runtime_checkable

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from plan_timeline.db.models import PlanEntry
from plan_timeline.db.session import get_session
from plan_timeline.plans.errors import PlanNotFoundError
from plan_timeline.plans.types import (
    DateRange,
    Plan,
    PlanColor,
    RepeatMode,
    format_notification_options,
    parse_notification_options,
)

SessionFactory = Callable[[], AbstractContextManager[Session]]


@runtime_checkable
class PlanRepository(Protocol):
    """Persistence contract for plan occurrences."""

    def fetch(self, date_range: DateRange | None = None) -> list[Plan]: ...

    def create(self, plan: Plan) -> Plan: ...

    def update(self, plan: Plan) -> Plan: ...

    def delete(self, plan_id: str) -> None: ...

    def delete_in_group(
        self,
        group_id: str,
        from_date: date,
        excluding_id: str | None = None,
    ) -> list[str]: ...


@runtime_checkable
class TransactionalPlanRepository(PlanRepository, Protocol):
    """Repository that can run several calls as one unit of work."""

    def unit_of_work(self) -> AbstractContextManager[None]: ...


def _apply(entry: PlanEntry, plan: Plan) -> None:
    entry.id = plan.id
    entry.repeat_group_id = plan.group_id
    entry.title = plan.title
    entry.note = plan.note
    entry.start_time = plan.start_time
    entry.end_time = plan.end_time
    entry.color = plan.color.value
    entry.repeat_mode = plan.repeat_mode.value
    entry.notification_options = format_notification_options(plan.notification_options)
    entry.is_completed = plan.is_completed
    entry.created_at = plan.created_at
    entry.updated_at = plan.updated_at


def _to_plan(entry: PlanEntry) -> Plan | None:
    try:
        color = PlanColor(entry.color)
        repeat_mode = RepeatMode(entry.repeat_mode)
    except ValueError:
        logger.warning(
            "Skipping plan entry with unknown color or repeat mode",
            plan_id=entry.id,
            color=entry.color,
            repeat_mode=entry.repeat_mode,
        )
        return None

    return Plan(
        id=entry.id,
        group_id=entry.repeat_group_id,
        title=entry.title,
        note=entry.note,
        color=color,
        notification_options=parse_notification_options(entry.notification_options),
        start_time=entry.start_time,
        end_time=entry.end_time,
        repeat_mode=repeat_mode,
        is_completed=entry.is_completed,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


class SqlPlanRepository:
    """SQLAlchemy-backed plan repository.

    Outside unit_of_work() every call opens its own session and commits on
    its own. Inside unit_of_work() all calls made by the same thread share
    one session, which commits once at exit and rolls back if anything
    raises. Other threads keep their own sessions meanwhile.
    """

    def __init__(self, session_factory: SessionFactory = get_session):
        """
        Args:
            session_factory: Callable returning a session context manager
                that commits on clean exit and rolls back on error
        """
        self._session_factory = session_factory
        # Open unit-of-work session, per thread
        self._local = threading.local()

    @property
    def _active_session(self) -> Session | None:
        return getattr(self._local, "session", None)

    @contextmanager
    def unit_of_work(self) -> Generator[None, None, None]:
        if self._active_session is not None:
            # Nested unit of work joins the outer one
            yield
            return

        with self._session_factory() as session:
            self._local.session = session
            try:
                yield
            finally:
                self._local.session = None

    @contextmanager
    def _session(self) -> Generator[Session, None, None]:
        if self._active_session is not None:
            yield self._active_session
            return
        with self._session_factory() as session:
            yield session

    def fetch(self, date_range: DateRange | None = None) -> list[Plan]:
        """Fetch plans whose start_time lies in date_range (all plans if None)."""
        with self._session() as session:
            query = select(PlanEntry)
            if date_range is not None:
                query = query.where(
                    PlanEntry.start_time >= date_range.start,
                    PlanEntry.start_time <= date_range.end,
                )
            query = query.order_by(PlanEntry.start_time)
            entries = list(session.execute(query).scalars().all())
            return [plan for plan in (_to_plan(entry) for entry in entries) if plan is not None]

    def fetch_group(self, group_id: str) -> list[Plan]:
        """Fetch every occurrence in a group, ordered by start_time."""
        with self._session() as session:
            query = (
                select(PlanEntry)
                .where(PlanEntry.repeat_group_id == group_id)
                .order_by(PlanEntry.start_time)
            )
            entries = list(session.execute(query).scalars().all())
            return [plan for plan in (_to_plan(entry) for entry in entries) if plan is not None]

    def get(self, plan_id: str) -> Plan:
        """Fetch one plan by id.

        Raises:
            PlanNotFoundError: If no plan has this id (or it cannot be decoded)
        """
        with self._session() as session:
            entry = session.get(PlanEntry, plan_id)
            plan = _to_plan(entry) if entry is not None else None
            if plan is None:
                raise PlanNotFoundError(plan_id)
            return plan

    def create(self, plan: Plan) -> Plan:
        with self._session() as session:
            entry = PlanEntry()
            _apply(entry, plan)
            session.add(entry)
            session.flush()
        logger.debug("Plan created", plan_id=plan.id, group_id=plan.group_id, day=plan.day.isoformat())
        return plan

    def update(self, plan: Plan) -> Plan:
        """Persist a plan's fields; an unknown id is inserted."""
        with self._session() as session:
            entry = session.get(PlanEntry, plan.id)
            if entry is None:
                entry = PlanEntry()
                session.add(entry)
            _apply(entry, plan)
            session.flush()
        logger.debug("Plan updated", plan_id=plan.id, group_id=plan.group_id)
        return plan

    def delete(self, plan_id: str) -> None:
        with self._session() as session:
            result = session.execute(delete(PlanEntry).where(PlanEntry.id == plan_id))
            session.flush()
        if result.rowcount == 0:
            logger.debug("Delete of unknown plan ignored", plan_id=plan_id)

    def delete_in_group(
        self,
        group_id: str,
        from_date: date,
        excluding_id: str | None = None,
    ) -> list[str]:
        """Delete occurrences of a group dated on or after from_date.

        Args:
            group_id: Group to delete from
            from_date: Earliest day to delete (occurrences before it are kept)
            excluding_id: Occurrence to keep even if it is in range

        Returns:
            Ids of the deleted occurrences
        """
        floor = datetime.combine(from_date, time.min)
        with self._session() as session:
            query = select(PlanEntry.id).where(
                PlanEntry.repeat_group_id == group_id,
                PlanEntry.start_time >= floor,
            )
            if excluding_id is not None:
                query = query.where(PlanEntry.id != excluding_id)
            ids = list(session.execute(query).scalars().all())
            if ids:
                session.execute(delete(PlanEntry).where(PlanEntry.id.in_(ids)))
                session.flush()

        logger.info(
            "Deleted occurrences in group",
            group_id=group_id,
            from_date=from_date.isoformat(),
            excluding_id=excluding_id,
            count=len(ids),
        )
        return ids
