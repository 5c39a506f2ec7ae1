"""Notification model (per-user inbox entry)."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import JSON, Boolean, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import Base, TimestampMixin, generate_uuid
from schoolcal_api.models.enums import NotificationType

if TYPE_CHECKING:
    from schoolcal_api.models.user import User


class Notification(Base, TimestampMixin):
    """Inbox entry for one user.

    reference_id points at whatever the notification is about; for
    WORKSPACE_INVITE it is the WorkspaceInvite id. There is no foreign key,
    so a reference can dangle after the target is deleted.
    """

    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(NotificationType),
        nullable=False,
        default=NotificationType.GENERAL,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, index=True
    )
    reference_id: Mapped[str | None] = mapped_column(String(36), index=True)
    # List of NotificationChannel values
    channels: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    user: Mapped[User] = relationship(back_populates="notifications")
