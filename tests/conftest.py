"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime
from itertools import count

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from plan_timeline.db.models import Base
from plan_timeline.db.session import session_scope
from plan_timeline.plans.repository import SqlPlanRepository
from plan_timeline.plans.types import DateRange, Plan

# Wednesday; "today" for every mutator test unless a test says otherwise
TODAY = date(2024, 6, 12)
NOW = datetime(2024, 6, 12, 8, 0)


class InMemoryPlanRepository:
    """Dict-backed PlanRepository without transactions.

    fail_on maps an operation name ("create", "update", "delete",
    "delete_in_group") to the 1-based call number that should raise.
    """

    def __init__(self, fail_on: dict[str, int] | None = None):
        self.plans: dict[str, Plan] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_on = fail_on or {}
        self._counts: dict[str, int] = {}

    def _tick(self, operation: str, key: str) -> None:
        self._counts[operation] = self._counts.get(operation, 0) + 1
        self.calls.append((operation, key))
        if self.fail_on.get(operation) == self._counts[operation]:
            raise ConnectionError(f"{operation} failed")

    def fetch(self, date_range: DateRange | None = None) -> list[Plan]:
        plans = sorted(self.plans.values(), key=lambda plan: plan.start_time)
        if date_range is None:
            return [plan.model_copy() for plan in plans]
        return [
            plan.model_copy()
            for plan in plans
            if date_range.start <= plan.start_time <= date_range.end
        ]

    def create(self, plan: Plan) -> Plan:
        self._tick("create", plan.id)
        self.plans[plan.id] = plan.model_copy()
        return plan

    def update(self, plan: Plan) -> Plan:
        self._tick("update", plan.id)
        self.plans[plan.id] = plan.model_copy()
        return plan

    def delete(self, plan_id: str) -> None:
        self._tick("delete", plan_id)
        self.plans.pop(plan_id, None)

    def delete_in_group(self, group_id: str, from_date: date, excluding_id: str | None = None) -> list[str]:
        self._tick("delete_in_group", group_id)
        removed = [
            plan.id
            for plan in self.plans.values()
            if plan.group_id == group_id and plan.day >= from_date and plan.id != excluding_id
        ]
        for plan_id in removed:
            del self.plans[plan_id]
        return removed

    def group(self, group_id: str) -> list[Plan]:
        return sorted(
            (plan for plan in self.plans.values() if plan.group_id == group_id),
            key=lambda plan: plan.start_time,
        )


class RecordingNotifier:
    """Notifier double that records every call."""

    def __init__(self):
        self.scheduled: list[str] = []
        self.cancelled: list[str] = []

    def schedule(self, plan: Plan) -> None:
        self.scheduled.append(plan.id)

    def cancel(self, plan_id: str) -> None:
        self.cancelled.append(plan_id)


@pytest.fixture
def memory_repository() -> InMemoryPlanRepository:
    return InMemoryPlanRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def id_factory():
    """Deterministic ids: id-1, id-2, ..."""
    counter = count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def session_local():
    """
    Provides a session factory over an isolated in-memory SQLite database.

    StaticPool keeps a single connection so every session sees the same
    in-memory database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield sessionmaker(bind=engine, autocommit=False, autoflush=False)
    finally:
        engine.dispose()


@pytest.fixture
def sql_repository(session_local) -> SqlPlanRepository:
    """SqlPlanRepository whose sessions commit/roll back like get_session()."""

    @contextmanager
    def factory() -> Iterator:
        with session_scope(session_local) as session:
            yield session

    return SqlPlanRepository(session_factory=factory)


@pytest.fixture
def repository_factory():
    """Build InMemoryPlanRepository instances, e.g. with failure injection."""
    return InMemoryPlanRepository


@pytest.fixture
def today() -> date:
    return TODAY
