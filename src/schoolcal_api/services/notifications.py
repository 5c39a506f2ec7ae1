"""Notification inbox and the invite accept/decline workflow.

A WORKSPACE_INVITE notification moves from unread + pending invite to one
of three outcomes:

- accept: membership created (unless already a member), invite ACCEPTED,
  notification read, all in one commit
- decline: invite DECLINED, notification read, in one commit
- orphaned: the referenced invite is gone, so the notification is deleted
  and the caller gets 410
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.exceptions import Conflict, Gone, NotFound
from schoolcal_api.models import (
    InviteStatus,
    MemberRole,
    Notification,
    NotificationAction,
    NotificationChannel,
    NotificationType,
    User,
    Workspace,
    WorkspaceInvite,
    WorkspaceMember,
)
from schoolcal_api.services.membership import is_member

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 50


@dataclass
class NotificationActionResult:
    """Outcome of accepting or declining an invite notification."""

    action: NotificationAction
    notification: Notification
    invite: WorkspaceInvite
    workspace_id: str
    workspace_name: str | None
    already_member: bool = False


async def create_notification(
    db: AsyncSession,
    *,
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    reference_id: str | None = None,
    channels: list[NotificationChannel] | None = None,
    scheduled_for: datetime | None = None,
) -> Notification:
    """Add a notification to the session without committing.

    Callers commit as part of their own unit of work.
    """
    if channels is None:
        channels = [NotificationChannel.PUSH]
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        reference_id=reference_id,
        channels=[channel.value for channel in channels],
        scheduled_for=scheduled_for,
    )
    db.add(notification)
    await db.flush()
    return notification


async def list_notifications(
    db: AsyncSession,
    user_id: str,
    unread_only: bool = False,
    limit: int = DEFAULT_PAGE_SIZE,
) -> list[Notification]:
    """List a user's notifications, newest first, capped at MAX_PAGE_SIZE."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    query = query.order_by(Notification.created_at.desc()).limit(
        max(1, min(limit, MAX_PAGE_SIZE))
    )

    result = await db.execute(query)
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, user_id: str) -> int:
    result = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
    )
    return result.scalar() or 0


async def mark_all_read(db: AsyncSession, user_id: str) -> int:
    """Mark every unread notification of a user as read.

    Returns the number of notifications updated.
    """
    result = await db.execute(
        update(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
        .values(read=True)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount or 0


async def get_owned_notification(
    db: AsyncSession, notification_id: str, user_id: str
) -> Notification:
    """Load a notification that belongs to the user.

    Someone else's notification is reported exactly like a missing one.
    """
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFound("Notification not found")
    return notification


async def mark_read(db: AsyncSession, notification: Notification) -> Notification:
    notification.read = True
    await db.commit()
    await db.refresh(notification)
    return notification


async def delete_notification(db: AsyncSession, notification: Notification) -> None:
    await db.delete(notification)
    await db.commit()


async def _get_workspace_name(db: AsyncSession, workspace_id: str) -> str | None:
    result = await db.execute(select(Workspace.name).where(Workspace.id == workspace_id))
    return result.scalar_one_or_none()


async def act_on_notification(
    db: AsyncSession,
    user: User,
    notification_id: str,
    action: NotificationAction,
) -> NotificationActionResult:
    """Accept or decline the invite a WORKSPACE_INVITE notification refers to.

    Raises:
        NotFound: notification missing or owned by someone else
        Conflict: notification type has no actions, or invite already resolved
        Gone: referenced invite no longer exists (notification is deleted)
    """
    user_id = user.id
    notification = await get_owned_notification(db, notification_id, user_id)

    if notification.type != NotificationType.WORKSPACE_INVITE:
        raise Conflict("This notification has no actions")

    invite = None
    if notification.reference_id is not None:
        invite = await db.get(WorkspaceInvite, notification.reference_id)

    if invite is None:
        await db.delete(notification)
        await db.commit()
        logger.info(
            "Deleted orphaned invite notification %s for user %s",
            notification_id,
            user_id,
        )
        raise Gone("This invite no longer exists")

    if invite.status != InviteStatus.PENDING:
        previous = invite.status.value.lower()
        notification.read = True
        await db.commit()
        raise Conflict(f"This invite was already {previous}")

    invite_id = invite.id
    workspace_id = invite.workspace_id
    workspace_name = await _get_workspace_name(db, workspace_id)

    if action == NotificationAction.DECLINE:
        invite.status = InviteStatus.DECLINED
        notification.read = True
        await db.commit()
        logger.info("User %s declined invite %s", user_id, invite_id)
        return NotificationActionResult(
            action=action,
            notification=notification,
            invite=invite,
            workspace_id=workspace_id,
            workspace_name=workspace_name,
        )

    already_member = await is_member(db, user_id, workspace_id)
    if not already_member:
        db.add(
            WorkspaceMember(
                workspace_id=workspace_id,
                user_id=user_id,
                role=MemberRole.USER,
            )
        )
    invite.status = InviteStatus.ACCEPTED
    notification.read = True

    try:
        await db.commit()
    except IntegrityError:
        # Joined through another path concurrently; keep the existing row
        await db.rollback()
        invite = await db.get(WorkspaceInvite, invite_id)
        notification = await db.get(Notification, notification_id)
        if invite is None or notification is None:
            raise Gone("This invite no longer exists") from None
        invite.status = InviteStatus.ACCEPTED
        notification.read = True
        await db.commit()
        already_member = True

    logger.info(
        "User %s accepted invite %s to workspace %s (already member: %s)",
        user_id,
        invite_id,
        workspace_id,
        already_member,
    )
    return NotificationActionResult(
        action=action,
        notification=notification,
        invite=invite,
        workspace_id=workspace_id,
        workspace_name=workspace_name,
        already_member=already_member,
    )
