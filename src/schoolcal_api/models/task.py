"""Task and per-user task completion models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from schoolcal_api.models.enums import TaskType

if TYPE_CHECKING:
    from schoolcal_api.models.discipline import Discipline
    from schoolcal_api.models.user import User
    from schoolcal_api.models.workspace import Workspace


class Task(Base, TimestampMixin, UpdatedAtMixin):
    """Dated piece of work for the whole workspace.

    Completion is tracked per user, not on the task itself.
    """

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    workspace_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    discipline_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("disciplines.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[TaskType] = mapped_column(Enum(TaskType), nullable=False)
    due_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="tasks")
    discipline: Mapped[Discipline | None] = relationship(back_populates="tasks")
    created_by: Mapped[User | None] = relationship()
    completions: Mapped[list[TaskCompletion]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
    )


class TaskCompletion(Base, TimestampMixin):
    """One user's done/not-done state for a task."""

    __tablename__ = "task_completions"
    __table_args__ = (
        UniqueConstraint("task_id", "user_id", name="uq_task_completion"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    task_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tasks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    task: Mapped[Task] = relationship(back_populates="completions")
