"""Workspace model (a class or a personal space)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Enum, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from schoolcal_api.models.enums import WorkspaceType

if TYPE_CHECKING:
    from schoolcal_api.models.discipline import Discipline
    from schoolcal_api.models.event import Event
    from schoolcal_api.models.invite import WorkspaceInvite
    from schoolcal_api.models.invite_link import WorkspaceInviteLink
    from schoolcal_api.models.task import Task
    from schoolcal_api.models.user import User
    from schoolcal_api.models.vote import Vote
    from schoolcal_api.models.workspace_member import WorkspaceMember


class Workspace(Base, TimestampMixin, UpdatedAtMixin):
    """Tenant root entity.

    Exactly one owner. The owner is always an admin, whether or not a
    membership row exists for them.
    """

    __tablename__ = "workspaces"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    type: Mapped[WorkspaceType] = mapped_column(
        Enum(WorkspaceType),
        nullable=False,
        default=WorkspaceType.CLASS,
    )
    voting_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    owner_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    owner: Mapped[User] = relationship(back_populates="owned_workspaces")
    members: Mapped[list[WorkspaceMember]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    invite_links: Mapped[list[WorkspaceInviteLink]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    invites: Mapped[list[WorkspaceInvite]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    disciplines: Mapped[list[Discipline]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    tasks: Mapped[list[Task]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    events: Mapped[list[Event]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
    votes: Mapped[list[Vote]] = relationship(
        back_populates="workspace",
        cascade="all, delete-orphan",
    )
