"""Vote (poll), option and response models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
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


class Vote(Base, TimestampMixin):
    """Poll with a fixed list of options. Only exists in voting workspaces."""

    __tablename__ = "votes"

    MIN_OPTIONS = 2
    MAX_OPTIONS = 10

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
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="votes")
    created_by: Mapped[User | None] = relationship()
    options: Mapped[list[VoteOption]] = relationship(
        back_populates="vote",
        cascade="all, delete-orphan",
        order_by="VoteOption.position",
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) < (now or utc_now())


class VoteOption(Base):
    __tablename__ = "vote_options"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    vote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("votes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Relationships
    vote: Mapped[Vote] = relationship(back_populates="options")
    responses: Mapped[list[VoteResponse]] = relationship(
        back_populates="option",
        cascade="all, delete-orphan",
    )


class VoteResponse(Base, TimestampMixin):
    """A user's chosen option. At most one per user per vote.

    vote_id duplicates option.vote_id so the database can enforce that.
    """

    __tablename__ = "vote_responses"
    __table_args__ = (
        UniqueConstraint("vote_id", "user_id", name="uq_vote_response"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )
    vote_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("votes.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    option_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("vote_options.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Relationships
    option: Mapped[VoteOption] = relationship(back_populates="responses")
    user: Mapped[User] = relationship()
