"""Notification inbox routes, including invite accept/decline."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.models import (
    InviteStatus,
    NotificationAction,
    NotificationType,
    User,
)
from schoolcal_api.schemas import ApiModel, MessageResponse
from schoolcal_api.services import notifications as notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


# --- Schemas ---


class NotificationResponse(ApiModel):
    id: str
    type: NotificationType
    title: str
    message: str
    read: bool
    reference_id: str | None
    channels: list[str]
    scheduled_for: datetime | None
    sent_at: datetime | None
    created_at: datetime


class NotificationListResponse(ApiModel):
    notifications: list[NotificationResponse]
    unread_count: int


class NotificationEnvelope(ApiModel):
    notification: NotificationResponse


class NotificationActionRequest(ApiModel):
    action: NotificationAction


class ActionInvite(ApiModel):
    id: str
    workspace_id: str
    status: InviteStatus


class NotificationActionResponse(ApiModel):
    message: str
    action: NotificationAction
    workspace_id: str
    already_member: bool
    invite: ActionInvite


# --- Endpoints ---


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: Annotated[bool, Query(alias="unreadOnly")] = False,
    limit: Annotated[int, Query()] = notification_service.DEFAULT_PAGE_SIZE,
):
    """List notifications, newest first. ``limit`` is capped at 100."""
    notifications = await notification_service.list_notifications(
        db, current_user.id, unread_only=unread_only, limit=limit
    )
    unread_count = await notification_service.count_unread(db, current_user.id)
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        unread_count=unread_count,
    )


@router.post("", response_model=MessageResponse)
async def mark_all_read(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Mark every notification as read."""
    await notification_service.mark_all_read(db, current_user.id)
    return MessageResponse(message="All notifications marked as read")


@router.post("/{notification_id}", response_model=NotificationActionResponse)
async def act_on_notification(
    notification_id: str,
    data: NotificationActionRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Accept or decline the workspace invite behind a notification."""
    result = await notification_service.act_on_notification(
        db, current_user, notification_id, data.action
    )

    workspace = result.workspace_name or "the workspace"
    if result.action == NotificationAction.DECLINE:
        message = "Invite declined"
    elif result.already_member:
        message = f"You are already a member of {workspace}"
    else:
        message = f"You joined {workspace}"

    return NotificationActionResponse(
        message=message,
        action=result.action,
        workspace_id=result.workspace_id,
        already_member=result.already_member,
        invite=ActionInvite(
            id=result.invite.id,
            workspace_id=result.invite.workspace_id,
            status=result.invite.status,
        ),
    )


@router.put("/{notification_id}", response_model=NotificationEnvelope)
async def mark_read(
    notification_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Mark one notification as read."""
    notification = await notification_service.get_owned_notification(
        db, notification_id, current_user.id
    )
    notification = await notification_service.mark_read(db, notification)
    return NotificationEnvelope(
        notification=NotificationResponse.model_validate(notification)
    )


@router.delete("/{notification_id}", response_model=MessageResponse)
async def delete_notification(
    notification_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete one notification."""
    notification = await notification_service.get_owned_notification(
        db, notification_id, current_user.id
    )
    await notification_service.delete_notification(db, notification)
    return MessageResponse(message="Notification deleted")
