"""Per-user notification delivery preferences."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from schoolcal_api.models.user import User


class NotificationPreference(Base, TimestampMixin):
    __tablename__ = "notification_preferences"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    email_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sms_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    push_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reminder_days_before: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    reminder_on_day: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Relationships
    user: Mapped[User] = relationship(back_populates="notification_preference")
