"""Event and attendance models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from schoolcal_api.models.enums import AttendanceStatus

if TYPE_CHECKING:
    from schoolcal_api.models.user import User
    from schoolcal_api.models.workspace import Workspace


class Event(Base, TimestampMixin, UpdatedAtMixin):
    """Scheduled happening in a workspace. end_date, when set, >= start_date."""

    __tablename__ = "events"

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
    created_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    start_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    location: Mapped[str | None] = mapped_column(String(500))

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="events")
    created_by: Mapped[User | None] = relationship()
    attendances: Mapped[list[Attendance]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
    )


class Attendance(Base, TimestampMixin):
    """A user's attendance at an event, one row per (event, user)."""

    __tablename__ = "attendances"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", name="uq_attendance"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    event_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[AttendanceStatus] = mapped_column(
        Enum(AttendanceStatus),
        nullable=False,
        default=AttendanceStatus.PENDING,
    )
    # Set whenever status leaves PENDING
    checked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    event: Mapped[Event] = relationship(back_populates="attendances")
    user: Mapped[User] = relationship()
