"""Discipline model (a school subject tasks are filed under)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from schoolcal_api.models.base import Base, TimestampMixin, generate_uuid

if TYPE_CHECKING:
    from schoolcal_api.models.task import Task
    from schoolcal_api.models.workspace import Workspace


class Discipline(Base, TimestampMixin):
    """Subject within a workspace. Deleting it keeps its tasks, unfiled."""

    __tablename__ = "disciplines"

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
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    color: Mapped[str | None] = mapped_column(String(7))  # "#RRGGBB"

    # Relationships
    workspace: Mapped[Workspace] = relationship(back_populates="disciplines")
    tasks: Mapped[list[Task]] = relationship(back_populates="discipline")
