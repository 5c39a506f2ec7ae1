"""User model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from schoolcal_api.models.notification import Notification
    from schoolcal_api.models.notification_preference import NotificationPreference
    from schoolcal_api.models.workspace import Workspace
    from schoolcal_api.models.workspace_member import WorkspaceMember


class User(Base, TimestampMixin):
    """Account identified by a unique email, authenticated by password."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Relationships
    owned_workspaces: Mapped[list[Workspace]] = relationship(back_populates="owner")
    memberships: Mapped[list[WorkspaceMember]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    notifications: Mapped[list[Notification]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
    notification_preference: Mapped[NotificationPreference | None] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )
