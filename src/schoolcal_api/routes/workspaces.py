"""Workspace and member management routes.

Every check goes through services.membership, so the workspace owner is
treated as an admin whether or not they have a membership row.
"""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import EmailStr, Field
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import Conflict, Forbidden, NotFound
from schoolcal_api.models import (
    MemberRole,
    User,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    WorkspaceType,
)
from schoolcal_api.schemas import ApiModel, MessageResponse, changed_fields
from schoolcal_api.services.membership import (
    get_membership,
    get_workspace_role,
    require_admin,
    require_member,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


# --- Schemas ---


class WorkspaceCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    type: WorkspaceType = WorkspaceType.CLASS
    voting_enabled: bool = False


class WorkspaceUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    voting_enabled: bool | None = None


class WorkspaceResponse(ApiModel):
    id: str
    name: str
    description: str | None
    type: WorkspaceType
    voting_enabled: bool
    owner_id: str
    created_at: datetime
    updated_at: datetime


class WorkspaceListItem(WorkspaceResponse):
    member_count: int


class MemberUser(ApiModel):
    id: str
    name: str
    email: str


class MemberResponse(ApiModel):
    """Workspace member; joined_at is the membership's creation time."""

    id: str
    user_id: str
    role: MemberRole
    joined_at: datetime
    user: MemberUser


class WorkspaceDetailResponse(WorkspaceResponse):
    members: list[MemberResponse]
    role: WorkspaceRole


class WorkspaceEnvelope(ApiModel):
    workspace: WorkspaceResponse


class WorkspaceDetailEnvelope(ApiModel):
    workspace: WorkspaceDetailResponse


class WorkspaceListResponse(ApiModel):
    workspaces: list[WorkspaceListItem]


class MemberListResponse(ApiModel):
    members: list[MemberResponse]
    owner_id: str


class MemberAdd(ApiModel):
    email: EmailStr
    role: MemberRole = MemberRole.USER


class MemberUpdateRole(ApiModel):
    role: MemberRole


class MemberEnvelope(ApiModel):
    member: MemberResponse


# --- Helper functions ---


def _member_response(membership: WorkspaceMember, user: User) -> MemberResponse:
    return MemberResponse(
        id=membership.id,
        user_id=membership.user_id,
        role=membership.role,
        joined_at=membership.created_at,
        user=MemberUser(id=user.id, name=user.name, email=user.email),
    )


async def get_workspace_or_404(db: AsyncSession, workspace_id: str) -> Workspace:
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFound("Workspace not found")
    return workspace


async def list_member_rows(
    db: AsyncSession, workspace_id: str
) -> list[MemberResponse]:
    """Members of a workspace with their user, in join order."""
    result = await db.execute(
        select(WorkspaceMember, User)
        .join(User, WorkspaceMember.user_id == User.id)
        .where(WorkspaceMember.workspace_id == workspace_id)
        .order_by(WorkspaceMember.created_at)
    )
    return [_member_response(membership, user) for membership, user in result.all()]


async def _get_member_in_workspace(
    db: AsyncSession, workspace_id: str, member_id: str
) -> WorkspaceMember:
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.id == member_id,
            WorkspaceMember.workspace_id == workspace_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        raise NotFound("Member not found")
    return membership


# --- Workspace endpoints ---


@router.get("", response_model=WorkspaceListResponse)
async def list_workspaces(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List workspaces the user owns or belongs to."""
    member_of = select(WorkspaceMember.workspace_id).where(
        WorkspaceMember.user_id == current_user.id
    )
    result = await db.execute(
        select(Workspace)
        .where(or_(Workspace.owner_id == current_user.id, Workspace.id.in_(member_of)))
        .order_by(Workspace.updated_at.desc())
    )
    workspaces = list(result.scalars().all())

    counts: dict[str, int] = {}
    if workspaces:
        count_result = await db.execute(
            select(WorkspaceMember.workspace_id, func.count(WorkspaceMember.id))
            .where(WorkspaceMember.workspace_id.in_([w.id for w in workspaces]))
            .group_by(WorkspaceMember.workspace_id)
        )
        counts = {workspace_id: count for workspace_id, count in count_result.all()}

    return WorkspaceListResponse(
        workspaces=[
            WorkspaceListItem(
                **WorkspaceResponse.model_validate(workspace).model_dump(),
                member_count=counts.get(workspace.id, 0),
            )
            for workspace in workspaces
        ]
    )


@router.post(
    "", response_model=WorkspaceEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_workspace(
    data: WorkspaceCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a workspace. The creator becomes owner and an ADMIN member."""
    workspace = Workspace(
        name=data.name,
        description=data.description,
        type=data.type,
        voting_enabled=data.voting_enabled,
        owner_id=current_user.id,
    )
    db.add(workspace)
    await db.flush()

    db.add(
        WorkspaceMember(
            workspace_id=workspace.id,
            user_id=current_user.id,
            role=MemberRole.ADMIN,
        )
    )
    await db.commit()
    await db.refresh(workspace)

    logger.info("User %s created workspace %s", current_user.id, workspace.id)
    return WorkspaceEnvelope(workspace=WorkspaceResponse.model_validate(workspace))


@router.get("/{workspace_id}", response_model=WorkspaceDetailEnvelope)
async def get_workspace(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a workspace with its members and the caller's role."""
    workspace = await get_workspace_or_404(db, workspace_id)
    role = await require_member(db, current_user.id, workspace_id)

    return WorkspaceDetailEnvelope(
        workspace=WorkspaceDetailResponse(
            **WorkspaceResponse.model_validate(workspace).model_dump(),
            members=await list_member_rows(db, workspace_id),
            role=role,
        )
    )


@router.put("/{workspace_id}", response_model=WorkspaceEnvelope)
async def update_workspace(
    workspace_id: str,
    data: WorkspaceUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update workspace (admin only).

    Omitted fields stay unchanged; an explicit null description clears it.
    """
    await require_admin(db, current_user.id, workspace_id)
    workspace = await get_workspace_or_404(db, workspace_id)

    for field, value in changed_fields(data, nullable={"description"}).items():
        setattr(workspace, field, value)

    await db.commit()
    await db.refresh(workspace)

    return WorkspaceEnvelope(workspace=WorkspaceResponse.model_validate(workspace))


@router.delete("/{workspace_id}", response_model=MessageResponse)
async def delete_workspace(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete workspace (owner only) along with everything in it."""
    role = await get_workspace_role(db, current_user.id, workspace_id)
    if role != WorkspaceRole.OWNER:
        raise Forbidden("Only the owner can delete this workspace")

    workspace = await get_workspace_or_404(db, workspace_id)
    await db.delete(workspace)
    await db.commit()

    logger.info("User %s deleted workspace %s", current_user.id, workspace_id)
    return MessageResponse(message="Workspace deleted")


# --- Member endpoints ---


@router.get("/{workspace_id}/members", response_model=MemberListResponse)
async def list_members(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List workspace members."""
    await require_member(db, current_user.id, workspace_id)
    workspace = await get_workspace_or_404(db, workspace_id)

    return MemberListResponse(
        members=await list_member_rows(db, workspace_id),
        owner_id=workspace.owner_id,
    )


@router.post(
    "/{workspace_id}/members",
    response_model=MemberEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_member(
    workspace_id: str,
    data: MemberAdd,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Add an existing user to the workspace by email (admin only)."""
    await require_admin(db, current_user.id, workspace_id)
    await get_workspace_or_404(db, workspace_id)

    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User not found")

    if await get_membership(db, user.id, workspace_id) is not None:
        raise Conflict("User is already a member of this workspace")

    membership = WorkspaceMember(
        workspace_id=workspace_id,
        user_id=user.id,
        role=data.role,
    )
    db.add(membership)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("User is already a member of this workspace") from None
    await db.refresh(membership)

    logger.info(
        "User %s added %s to workspace %s as %s",
        current_user.id,
        user.id,
        workspace_id,
        membership.role.value,
    )
    return MemberEnvelope(member=_member_response(membership, user))


@router.put("/{workspace_id}/members/{member_id}", response_model=MemberEnvelope)
async def update_member_role(
    workspace_id: str,
    member_id: str,
    data: MemberUpdateRole,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Change a member's role (admin only). The owner's row is left alone."""
    await require_admin(db, current_user.id, workspace_id)
    workspace = await get_workspace_or_404(db, workspace_id)
    membership = await _get_member_in_workspace(db, workspace_id, member_id)

    if membership.user_id == workspace.owner_id:
        raise Conflict("Cannot change the role of the workspace owner")

    membership.role = data.role
    await db.commit()
    await db.refresh(membership)

    user = await db.get(User, membership.user_id)
    return MemberEnvelope(member=_member_response(membership, user))


@router.delete("/{workspace_id}/members/{member_id}", response_model=MessageResponse)
async def remove_member(
    workspace_id: str,
    member_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Remove a member (admin only), or leave the workspace yourself."""
    role = await require_member(db, current_user.id, workspace_id)
    workspace = await get_workspace_or_404(db, workspace_id)
    membership = await _get_member_in_workspace(db, workspace_id, member_id)

    is_self = membership.user_id == current_user.id
    if not is_self and role not in (WorkspaceRole.OWNER, WorkspaceRole.ADMIN):
        raise Forbidden("Admin access required")
    if membership.user_id == workspace.owner_id:
        raise Conflict("Cannot remove the workspace owner")

    await db.delete(membership)
    await db.commit()

    logger.info(
        "User %s removed member %s from workspace %s",
        current_user.id,
        membership.user_id,
        workspace_id,
    )
    return MessageResponse(message="Member removed")
