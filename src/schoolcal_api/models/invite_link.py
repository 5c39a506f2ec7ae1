"""Shareable invite link model."""

from __future__ import annotations

import secrets
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import (
    Base,
    TimestampMixin,
    as_utc,
    generate_uuid,
    utc_now,
)

if TYPE_CHECKING:
    from schoolcal_api.models.user import User
    from schoolcal_api.models.workspace import Workspace

CODE_RANDOM_BYTES = 12  # 16 chars in base64


def generate_link_code() -> str:
    """Generate a URL-safe invite code."""
    return secrets.token_urlsafe(CODE_RANDOM_BYTES)


class WorkspaceInviteLink(Base, TimestampMixin):
    """Code that lets anyone holding it join a workspace.

    Usable while uses < max_uses and expires_at is unset or in the future.
    Exhausted or expired links stay around until an admin deletes them.
    """

    __tablename__ = "workspace_invite_links"
    __table_args__ = (
        CheckConstraint("max_uses >= 1", name="ck_invite_link_max_uses"),
        CheckConstraint("uses <= max_uses", name="ck_invite_link_uses"),
    )

    DEFAULT_MAX_USES = 10
    MAX_MAX_USES = 100
    MAX_EXPIRES_IN_DAYS = 30

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
    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        nullable=False,
        index=True,
        default=generate_link_code,
    )
    created_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    max_uses: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_MAX_USES
    )
    uses: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="invite_links")
    created_by: Mapped[User | None] = relationship()

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (now or utc_now())

    def is_exhausted(self) -> bool:
        return self.uses >= self.max_uses

    @property
    def uses_remaining(self) -> int:
        return max(self.max_uses - self.uses, 0)
