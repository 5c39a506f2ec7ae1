"""Calendar resources: disciplines, tasks, events and votes.

Revision ID: 002_calendar
Revises: 001_initial
Create Date: 2026-10-18 12:00:00

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "002_calendar"
down_revision: Union[str, Sequence[str], None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.now(),
    )


def _fk(name: str, target: str, ondelete: str = "CASCADE", **kwargs) -> sa.Column:
    return sa.Column(
        name,
        sa.String(36),
        sa.ForeignKey(target, ondelete=ondelete),
        **kwargs,
    )


def upgrade() -> None:
    """Create the discipline, task, event and vote tables."""
    # Disciplines (school subjects)
    op.create_table(
        "disciplines",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("workspace_id", "workspaces.id", nullable=False, index=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("color", sa.String(7), nullable=True),
        _created_at(),
    )

    # Tasks (deleting a discipline only detaches its tasks)
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("workspace_id", "workspaces.id", nullable=False, index=True),
        _fk("discipline_id", "disciplines.id", "SET NULL", nullable=True, index=True),
        _fk("created_by_id", "users.id", "SET NULL", nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "type",
            sa.Enum("TRABALHO", "TESTE", "PROJETO", "TAREFA", name="tasktype"),
            nullable=False,
        ),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False, index=True),
        _created_at(),
        _updated_at(),
    )

    # Per-user task completion
    op.create_table(
        "task_completions",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("task_id", "tasks.id", nullable=False, index=True),
        _fk("user_id", "users.id", nullable=False, index=True),
        sa.Column("completed", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("task_id", "user_id", name="uq_task_completion"),
    )

    # Events
    op.create_table(
        "events",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("workspace_id", "workspaces.id", nullable=False, index=True),
        _fk("created_by_id", "users.id", "SET NULL", nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "start_date", sa.DateTime(timezone=True), nullable=False, index=True
        ),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        _created_at(),
        _updated_at(),
    )

    # Attendance (one row per event and user)
    op.create_table(
        "attendances",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("event_id", "events.id", nullable=False, index=True),
        _fk("user_id", "users.id", nullable=False, index=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "PRESENT", "ABSENT", "EXCUSED", name="attendancestatus"),
            nullable=False,
            server_default="PENDING",
        ),
        sa.Column("checked_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.UniqueConstraint("event_id", "user_id", name="uq_attendance"),
    )

    # Votes, their options and responses
    op.create_table(
        "votes",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("workspace_id", "workspaces.id", nullable=False, index=True),
        _fk("created_by_id", "users.id", "SET NULL", nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    op.create_table(
        "vote_options",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("vote_id", "votes.id", nullable=False, index=True),
        sa.Column("text", sa.String(200), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
    )

    op.create_table(
        "vote_responses",
        sa.Column("id", sa.String(36), primary_key=True),
        _fk("vote_id", "votes.id", nullable=False, index=True),
        _fk("option_id", "vote_options.id", nullable=False, index=True),
        _fk("user_id", "users.id", nullable=False, index=True),
        _created_at(),
        sa.UniqueConstraint("vote_id", "user_id", name="uq_vote_response"),
    )


def downgrade() -> None:
    """Drop the calendar tables."""
    op.drop_table("vote_responses")
    op.drop_table("vote_options")
    op.drop_table("votes")
    op.drop_table("attendances")
    op.drop_table("events")
    op.drop_table("task_completions")
    op.drop_table("tasks")
    op.drop_table("disciplines")
    op.execute("DROP TYPE IF EXISTS attendancestatus")
    op.execute("DROP TYPE IF EXISTS tasktype")
