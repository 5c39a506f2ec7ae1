"""Directed email invites."""

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from schoolcal_api.exceptions import Conflict, NotFound
from schoolcal_api.models import (
    InviteStatus,
    Notification,
    NotificationChannel,
    NotificationType,
    User,
    Workspace,
    WorkspaceInvite,
)
from schoolcal_api.services.membership import is_member
from schoolcal_api.services.notifications import create_notification

logger = logging.getLogger(__name__)

INVITE_NOTIFICATION_TITLE = "Workspace invitation"


@dataclass
class InviteCreateResult:
    invite: WorkspaceInvite
    # Whether the email belongs to an account (and a notification was created)
    user_exists: bool


def _invite_message(inviter_name: str | None, workspace_name: str) -> str:
    if inviter_name:
        return f'{inviter_name} invited you to the workspace "{workspace_name}"'
    return f'You were invited to the workspace "{workspace_name}"'


async def _get_invite_for_email(
    db: AsyncSession, workspace_id: str, email: str
) -> WorkspaceInvite | None:
    result = await db.execute(
        select(WorkspaceInvite).where(
            WorkspaceInvite.workspace_id == workspace_id,
            WorkspaceInvite.email == email,
        )
    )
    return result.scalar_one_or_none()


async def create_invite(
    db: AsyncSession,
    workspace_id: str,
    email: str,
    inviter: User,
) -> InviteCreateResult:
    """Invite an email to a workspace.

    A previous ACCEPTED or DECLINED invite for the same email is reset to
    PENDING; a PENDING one is a duplicate. If the email belongs to an
    account, a WORKSPACE_INVITE notification is created in the same commit.

    Raises:
        NotFound: workspace doesn't exist
        Conflict: email already a member, or an invite is already pending
    """
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFound("Workspace not found")

    result = await db.execute(select(User).where(User.email == email))
    target_user = result.scalar_one_or_none()
    if target_user is not None and await is_member(db, target_user.id, workspace_id):
        raise Conflict("This user is already a member of the workspace")

    invite = await _get_invite_for_email(db, workspace_id, email)
    if invite is not None and invite.status == InviteStatus.PENDING:
        raise Conflict("An invite is already pending for this email")

    if invite is None:
        invite = WorkspaceInvite(
            workspace_id=workspace_id,
            email=email,
            invited_by_id=inviter.id,
            status=InviteStatus.PENDING,
        )
        db.add(invite)
    else:
        invite.status = InviteStatus.PENDING
        invite.invited_by_id = inviter.id

    try:
        await db.flush()
        if target_user is not None:
            await create_notification(
                db,
                user_id=target_user.id,
                type=NotificationType.WORKSPACE_INVITE,
                title=INVITE_NOTIFICATION_TITLE,
                message=_invite_message(inviter.name, workspace.name),
                reference_id=invite.id,
                channels=[NotificationChannel.PUSH],
            )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("An invite is already pending for this email") from None

    await db.refresh(invite)
    logger.info(
        "User %s invited %s to workspace %s (account exists: %s)",
        inviter.id,
        email,
        workspace_id,
        target_user is not None,
    )
    return InviteCreateResult(invite=invite, user_exists=target_user is not None)


async def list_invites(db: AsyncSession, workspace_id: str) -> list[WorkspaceInvite]:
    """All invites of a workspace regardless of status, newest first."""
    result = await db.execute(
        select(WorkspaceInvite)
        .where(WorkspaceInvite.workspace_id == workspace_id)
        .order_by(WorkspaceInvite.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_invite(db: AsyncSession, workspace_id: str, invite_id: str) -> None:
    """Delete an invite whatever its status.

    Notifications still referencing it are cleaned up when acted upon.
    """
    result = await db.execute(
        select(WorkspaceInvite).where(
            WorkspaceInvite.id == invite_id,
            WorkspaceInvite.workspace_id == workspace_id,
        )
    )
    invite = result.scalar_one_or_none()
    if invite is None:
        raise NotFound("Invite not found")

    await db.delete(invite)
    await db.commit()


async def surface_pending_invites(db: AsyncSession, user: User) -> int:
    """Create invite notifications for pending invites addressed to a new account.

    Called during registration, before its commit. Invites that already
    have a notification for this user are skipped. Returns the number of
    notifications created.
    """
    inviter = aliased(User)
    result = await db.execute(
        select(WorkspaceInvite, Workspace.name, inviter.name)
        .join(Workspace, WorkspaceInvite.workspace_id == Workspace.id)
        .outerjoin(inviter, WorkspaceInvite.invited_by_id == inviter.id)
        .where(
            WorkspaceInvite.email == user.email,
            WorkspaceInvite.status == InviteStatus.PENDING,
        )
    )
    rows = result.all()
    if not rows:
        return 0

    existing = await db.execute(
        select(Notification.reference_id).where(
            Notification.user_id == user.id,
            Notification.type == NotificationType.WORKSPACE_INVITE,
        )
    )
    already_notified = set(existing.scalars().all())

    created = 0
    for invite, workspace_name, inviter_name in rows:
        if invite.id in already_notified:
            continue
        await create_notification(
            db,
            user_id=user.id,
            type=NotificationType.WORKSPACE_INVITE,
            title=INVITE_NOTIFICATION_TITLE,
            message=_invite_message(inviter_name, workspace_name),
            reference_id=invite.id,
        )
        created += 1

    logger.info(
        "Surfaced %d pending invite(s) for new user %s", created, user.id
    )
    return created
