"""Invite routes: shareable links and directed email invites.

Management endpoints live under /workspaces/{id}/invites and need an
admin. The link landing endpoints (/invites/{code}) are public for
reading and need a session to join.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import InvalidRequest
from schoolcal_api.models import InviteStatus, User, WorkspaceInviteLink
from schoolcal_api.schemas import ApiModel, MessageResponse
from schoolcal_api.services import invite_links as invite_link_service
from schoolcal_api.services import invites as invite_service
from schoolcal_api.services.membership import require_admin

router = APIRouter(tags=["invites"])


# --- Schemas ---


class InviteLinkCreate(ApiModel):
    max_uses: int = Field(
        default=WorkspaceInviteLink.DEFAULT_MAX_USES,
        ge=1,
        le=WorkspaceInviteLink.MAX_MAX_USES,
    )
    expires_in_days: int | None = Field(
        default=None, ge=1, le=WorkspaceInviteLink.MAX_EXPIRES_IN_DAYS
    )


class InviteLinkResponse(ApiModel):
    id: str
    workspace_id: str
    code: str
    max_uses: int
    uses: int
    expires_at: datetime | None
    created_by_id: str | None
    created_at: datetime


class InviteLinkWithState(InviteLinkResponse):
    is_expired: bool
    is_exhausted: bool


class InviteLinkListResponse(ApiModel):
    links: list[InviteLinkWithState]


class InviteLinkCreateResponse(ApiModel):
    link: InviteLinkResponse
    invite_url: str


class InviteWorkspaceSummary(ApiModel):
    id: str
    name: str
    description: str | None
    member_count: int


class InviteLinkLandingResponse(ApiModel):
    workspace: InviteWorkspaceSummary
    uses_remaining: int
    expires_at: datetime | None


class InviteLinkAcceptResponse(ApiModel):
    message: str
    workspace_id: str


class InviteCreate(ApiModel):
    email: EmailStr


class InviteResponse(ApiModel):
    id: str
    workspace_id: str
    email: str
    status: InviteStatus
    invited_by_id: str | None
    created_at: datetime
    updated_at: datetime


class InviteListResponse(ApiModel):
    invites: list[InviteResponse]


class InviteCreateResponse(ApiModel):
    invite: InviteResponse
    user_exists: bool
    message: str


# --- Invite link endpoints ---


@router.get(
    "/workspaces/{workspace_id}/invites/links", response_model=InviteLinkListResponse
)
async def list_invite_links(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List a workspace's invite links with their computed state (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    views = await invite_link_service.list_invite_links(db, workspace_id)
    return InviteLinkListResponse(
        links=[
            InviteLinkWithState(
                **InviteLinkResponse.model_validate(view.link).model_dump(),
                is_expired=view.is_expired,
                is_exhausted=view.is_exhausted,
            )
            for view in views
        ]
    )


@router.post(
    "/workspaces/{workspace_id}/invites/links",
    response_model=InviteLinkCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite_link(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    data: Annotated[InviteLinkCreate | None, Body()] = None,
):
    """Create an invite link (admin only). The body is optional."""
    await require_admin(db, current_user.id, workspace_id)

    data = data or InviteLinkCreate()
    link = await invite_link_service.create_invite_link(
        db,
        workspace_id,
        created_by_id=current_user.id,
        max_uses=data.max_uses,
        expires_in_days=data.expires_in_days,
    )
    return InviteLinkCreateResponse(
        link=InviteLinkResponse.model_validate(link),
        invite_url=invite_link_service.build_invite_url(link.code),
    )


@router.delete(
    "/workspaces/{workspace_id}/invites/links", response_model=MessageResponse
)
async def delete_invite_link(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    link_id: Annotated[str | None, Query(alias="linkId")] = None,
):
    """Delete an invite link (admin only)."""
    await require_admin(db, current_user.id, workspace_id)
    if not link_id:
        raise InvalidRequest("Link ID required")

    await invite_link_service.delete_invite_link(db, workspace_id, link_id)
    return MessageResponse(message="Invite link deleted")


@router.get("/invites/{code}", response_model=InviteLinkLandingResponse)
async def get_invite_link(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Public landing data for an invite link."""
    summary = await invite_link_service.resolve_invite_link(db, code)
    return InviteLinkLandingResponse(
        workspace=InviteWorkspaceSummary(
            id=summary.workspace.id,
            name=summary.workspace.name,
            description=summary.workspace.description,
            member_count=summary.member_count,
        ),
        uses_remaining=summary.uses_remaining,
        expires_at=summary.link.expires_at,
    )


@router.post("/invites/{code}", response_model=InviteLinkAcceptResponse)
async def accept_invite_link(
    code: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Join the link's workspace, consuming one use."""
    result = await invite_link_service.accept_invite_link(db, code, current_user)
    return InviteLinkAcceptResponse(
        message=f"You joined {result.workspace_name}",
        workspace_id=result.workspace_id,
    )


# --- Email invite endpoints ---


@router.get("/workspaces/{workspace_id}/invites", response_model=InviteListResponse)
async def list_invites(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List a workspace's email invites, newest first (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    invites = await invite_service.list_invites(db, workspace_id)
    return InviteListResponse(
        invites=[InviteResponse.model_validate(invite) for invite in invites]
    )


@router.post(
    "/workspaces/{workspace_id}/invites",
    response_model=InviteCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_invite(
    workspace_id: str,
    data: InviteCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Invite an email address to the workspace (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    result = await invite_service.create_invite(
        db, workspace_id, data.email, inviter=current_user
    )
    if result.user_exists:
        message = "Invite sent, the user has been notified"
    else:
        message = "Invite created, the user will see it after registering"

    return InviteCreateResponse(
        invite=InviteResponse.model_validate(result.invite),
        user_exists=result.user_exists,
        message=message,
    )


@router.delete("/workspaces/{workspace_id}/invites", response_model=MessageResponse)
async def delete_invite(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    invite_id: Annotated[str | None, Query(alias="inviteId")] = None,
):
    """Cancel an email invite whatever its status (admin only)."""
    await require_admin(db, current_user.id, workspace_id)
    if not invite_id:
        raise InvalidRequest("Invite ID required")

    await invite_service.delete_invite(db, workspace_id, invite_id)
    return MessageResponse(message="Invite deleted")
