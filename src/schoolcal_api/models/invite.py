"""Directed email invite model."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Enum, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import (
    Base,
    TimestampMixin,
    UpdatedAtMixin,
    generate_uuid,
)
from schoolcal_api.models.enums import InviteStatus

if TYPE_CHECKING:
    from schoolcal_api.models.user import User
    from schoolcal_api.models.workspace import Workspace


class WorkspaceInvite(Base, TimestampMixin, UpdatedAtMixin):
    """Invitation to join a workspace, addressed to an email.

    One row per (workspace, email). Re-inviting an email whose invite was
    accepted or declined resets the same row back to PENDING. The invited
    person doesn't need an account yet.
    """

    __tablename__ = "workspace_invites"
    __table_args__ = (
        UniqueConstraint("workspace_id", "email", name="uq_workspace_invite_email"),
    )

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
    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )
    status: Mapped[InviteStatus] = mapped_column(
        Enum(InviteStatus),
        nullable=False,
        default=InviteStatus.PENDING,
        index=True,
    )
    invited_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="invites")
    invited_by: Mapped[User | None] = relationship()
