"""Initial schema: users, workspaces, memberships, invites and notifications.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-18 09:00:00

"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, Sequence[str], None] = None
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


def upgrade() -> None:
    """Create the account, workspace, invite and notification tables."""
    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _created_at(),
    )

    # Workspaces (owner is always an admin, membership row or not)
    op.create_table(
        "workspaces",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column(
            "type",
            sa.Enum("CLASS", "PERSONAL", name="workspacetype"),
            nullable=False,
            server_default="CLASS",
        ),
        sa.Column(
            "voting_enabled", sa.Boolean, nullable=False, server_default=sa.false()
        ),
        sa.Column(
            "owner_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        _created_at(),
        _updated_at(),
    )

    # Workspace members (junction table with roles)
    op.create_table(
        "workspace_members",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "USER", name="memberrole"),
            nullable=False,
            server_default="USER",
        ),
        _created_at(),
        sa.UniqueConstraint("workspace_id", "user_id", name="uq_workspace_member"),
    )

    # Invite links
    op.create_table(
        "workspace_invite_links",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("code", sa.String(64), unique=True, nullable=False, index=True),
        sa.Column(
            "created_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("max_uses", sa.Integer, nullable=False, server_default="10"),
        sa.Column("uses", sa.Integer, nullable=False, server_default="0"),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
        sa.CheckConstraint("max_uses >= 1", name="ck_invite_link_max_uses"),
        sa.CheckConstraint("uses <= max_uses", name="ck_invite_link_uses"),
    )

    # Email invites (one row per workspace and email)
    op.create_table(
        "workspace_invites",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "workspace_id",
            sa.String(36),
            sa.ForeignKey("workspaces.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("email", sa.String(255), nullable=False, index=True),
        sa.Column(
            "status",
            sa.Enum("PENDING", "ACCEPTED", "DECLINED", name="invitestatus"),
            nullable=False,
            server_default="PENDING",
            index=True,
        ),
        sa.Column(
            "invited_by_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        _created_at(),
        _updated_at(),
        sa.UniqueConstraint(
            "workspace_id", "email", name="uq_workspace_invite_email"
        ),
    )

    # Notifications (reference_id has no FK, it may dangle)
    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column(
            "type",
            sa.Enum(
                "EVENT_REMINDER",
                "TASK_DEADLINE",
                "VOTE_CREATED",
                "GROUP_ASSIGNED",
                "WORKSPACE_INVITE",
                "GENERAL",
                name="notificationtype",
            ),
            nullable=False,
            server_default="GENERAL",
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column(
            "read", sa.Boolean, nullable=False, server_default=sa.false(), index=True
        ),
        sa.Column("reference_id", sa.String(36), nullable=True, index=True),
        sa.Column("channels", sa.JSON, nullable=False),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        _created_at(),
    )

    # Notification preferences (one row per user)
    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            unique=True,
            nullable=False,
        ),
        sa.Column("email_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("sms_enabled", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("push_enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "reminder_days_before", sa.Integer, nullable=False, server_default="1"
        ),
        sa.Column(
            "reminder_on_day", sa.Boolean, nullable=False, server_default=sa.true()
        ),
        _created_at(),
    )

    # Password resets
    op.create_table(
        "password_resets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used", sa.Boolean, nullable=False, server_default=sa.false()),
        _created_at(),
    )


def downgrade() -> None:
    """Drop all tables."""
    op.drop_table("password_resets")
    op.drop_table("notification_preferences")
    op.drop_table("notifications")
    op.drop_table("workspace_invites")
    op.drop_table("workspace_invite_links")
    op.drop_table("workspace_members")
    op.drop_table("workspaces")
    op.drop_table("users")
    op.execute("DROP TYPE IF EXISTS notificationtype")
    op.execute("DROP TYPE IF EXISTS invitestatus")
    op.execute("DROP TYPE IF EXISTS memberrole")
    op.execute("DROP TYPE IF EXISTS workspacetype")
