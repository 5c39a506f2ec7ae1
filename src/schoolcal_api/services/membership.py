"""Workspace membership and role resolution.

Single place where "who may do what in a workspace" is decided. The owner
check always runs first and independently of membership rows, because the
owner need not have one.

All helpers accept workspace ids that don't exist and answer False/None.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.exceptions import Forbidden
from schoolcal_api.models import MemberRole, Workspace, WorkspaceMember, WorkspaceRole


async def get_membership(
    db: AsyncSession, user_id: str, workspace_id: str
) -> WorkspaceMember | None:
    """Get user's membership row in a workspace."""
    result = await db.execute(
        select(WorkspaceMember).where(
            WorkspaceMember.workspace_id == workspace_id,
            WorkspaceMember.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def _get_owner_id(db: AsyncSession, workspace_id: str) -> str | None:
    result = await db.execute(
        select(Workspace.owner_id).where(Workspace.id == workspace_id)
    )
    return result.scalar_one_or_none()


async def is_member(db: AsyncSession, user_id: str, workspace_id: str) -> bool:
    """True iff a membership row exists. No owner shortcut."""
    return await get_membership(db, user_id, workspace_id) is not None


async def is_admin(db: AsyncSession, user_id: str, workspace_id: str) -> bool:
    """True iff the user owns the workspace or holds an ADMIN membership."""
    return await get_workspace_role(db, user_id, workspace_id) in (
        WorkspaceRole.OWNER,
        WorkspaceRole.ADMIN,
    )


async def get_workspace_role(
    db: AsyncSession, user_id: str, workspace_id: str
) -> WorkspaceRole | None:
    """Resolve the effective role: OWNER beats the membership row's role."""
    if await _get_owner_id(db, workspace_id) == user_id:
        return WorkspaceRole.OWNER

    membership = await get_membership(db, user_id, workspace_id)
    if membership is None:
        return None
    if membership.role == MemberRole.ADMIN:
        return WorkspaceRole.ADMIN
    return WorkspaceRole.USER


async def require_member(
    db: AsyncSession, user_id: str, workspace_id: str
) -> WorkspaceRole:
    """Require any role in the workspace (owner counts)."""
    role = await get_workspace_role(db, user_id, workspace_id)
    if role is None:
        raise Forbidden("Access denied")
    return role


async def require_admin(
    db: AsyncSession, user_id: str, workspace_id: str
) -> WorkspaceRole:
    """Require owner or admin role in the workspace."""
    role = await get_workspace_role(db, user_id, workspace_id)
    if role not in (WorkspaceRole.OWNER, WorkspaceRole.ADMIN):
        raise Forbidden("Admin access required")
    return role
