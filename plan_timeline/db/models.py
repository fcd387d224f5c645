from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class PlanEntry(Base):
    """Persisted plan occurrence.

    One row per concrete occurrence. Occurrences generated from one recurring
    definition share repeat_group_id.
    """

    __tablename__ = "plan_entries"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    repeat_group_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)

    title: Mapped[str] = mapped_column(String, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String, nullable=False, default="green")

    start_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    repeat_mode: Mapped[str] = mapped_column(String, nullable=False, default="none")
    # Comma-separated option values; "" = no reminders, NULL = legacy row (end_time only)
    notification_options: Mapped[str | None] = mapped_column(String, nullable=True)

    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (
        Index("idx_plan_entries_group_start", "repeat_group_id", "start_time"),  # delete-forward within a group
    )

    def __repr__(self) -> str:
        return f"<PlanEntry id={self.id} group={self.repeat_group_id} start={self.start_time} title={self.title!r}>"
