"""Shareable invite links.

A link is consumable while uses < max_uses and it hasn't expired. Its
state is computed on read; nothing runs in the background. Consumption
increments ``uses`` with a conditional UPDATE in the same transaction as
the membership insert, so concurrent joins can never push uses past
max_uses and a failed insert never burns a use.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.config import settings
from schoolcal_api.exceptions import Conflict, Gone, NotFound
from schoolcal_api.models import (
    MemberRole,
    User,
    Workspace,
    WorkspaceInviteLink,
    WorkspaceMember,
)
from schoolcal_api.models.base import utc_now
from schoolcal_api.services.membership import is_member

logger = logging.getLogger(__name__)

ALREADY_MEMBER_MESSAGE = "You are already a member of this workspace"


@dataclass
class InviteLinkView:
    """A link plus its computed state."""

    link: WorkspaceInviteLink
    is_expired: bool
    is_exhausted: bool


@dataclass
class InviteLinkSummary:
    """What the public invite landing page shows."""

    link: WorkspaceInviteLink
    workspace: Workspace
    member_count: int

    @property
    def uses_remaining(self) -> int:
        return self.link.uses_remaining


@dataclass
class LinkAcceptResult:
    workspace_id: str
    workspace_name: str


def build_invite_url(code: str) -> str:
    """Build the URL of the invite landing page for a code."""
    return f"{settings.app_url.rstrip('/')}/invite/{code}"


def _ensure_usable(link: WorkspaceInviteLink, now: datetime) -> None:
    if link.is_expired(now):
        raise Gone("This invite has expired")
    if link.is_exhausted():
        raise Gone("This invite has reached its usage limit")


async def _get_link_by_code(db: AsyncSession, code: str) -> WorkspaceInviteLink:
    result = await db.execute(
        select(WorkspaceInviteLink).where(WorkspaceInviteLink.code == code)
    )
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFound("Invite not found")
    return link


async def create_invite_link(
    db: AsyncSession,
    workspace_id: str,
    created_by_id: str,
    max_uses: int = WorkspaceInviteLink.DEFAULT_MAX_USES,
    expires_in_days: int | None = None,
    now: datetime | None = None,
) -> WorkspaceInviteLink:
    """Create a link. ``expires_in_days`` becomes an absolute expires_at."""
    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFound("Workspace not found")

    now = now or utc_now()
    expires_at = now + timedelta(days=expires_in_days) if expires_in_days else None

    link = WorkspaceInviteLink(
        workspace_id=workspace_id,
        created_by_id=created_by_id,
        max_uses=max_uses,
        uses=0,
        expires_at=expires_at,
    )
    db.add(link)
    await db.commit()
    await db.refresh(link)

    logger.info("Created invite link %s for workspace %s", link.id, workspace_id)
    return link


async def list_invite_links(
    db: AsyncSession, workspace_id: str, now: datetime | None = None
) -> list[InviteLinkView]:
    now = now or utc_now()
    result = await db.execute(
        select(WorkspaceInviteLink)
        .where(WorkspaceInviteLink.workspace_id == workspace_id)
        .order_by(WorkspaceInviteLink.created_at.desc())
    )
    return [
        InviteLinkView(
            link=link,
            is_expired=link.is_expired(now),
            is_exhausted=link.is_exhausted(),
        )
        for link in result.scalars().all()
    ]


async def resolve_invite_link(
    db: AsyncSession, code: str, now: datetime | None = None
) -> InviteLinkSummary:
    """Look up a usable link by code.

    Raises:
        NotFound: unknown code
        Gone: expired or exhausted
    """
    link = await _get_link_by_code(db, code)
    _ensure_usable(link, now or utc_now())

    workspace = await db.get(Workspace, link.workspace_id)
    if workspace is None:
        raise NotFound("Invite not found")

    count_result = await db.execute(
        select(func.count(WorkspaceMember.id)).where(
            WorkspaceMember.workspace_id == link.workspace_id
        )
    )
    return InviteLinkSummary(
        link=link,
        workspace=workspace,
        member_count=count_result.scalar() or 0,
    )


async def accept_invite_link(
    db: AsyncSession,
    code: str,
    user: User,
    now: datetime | None = None,
) -> LinkAcceptResult:
    """Join a workspace through a link, consuming one use.

    Raises:
        NotFound: unknown code
        Gone: expired or exhausted (re-checked, state may have changed)
        Conflict: caller already a member; carries ``workspaceId``
    """
    now = now or utc_now()
    link = await _get_link_by_code(db, code)
    _ensure_usable(link, now)

    workspace_id = link.workspace_id
    if await is_member(db, user.id, workspace_id):
        raise Conflict(ALREADY_MEMBER_MESSAGE, workspaceId=workspace_id)

    workspace = await db.get(Workspace, workspace_id)
    if workspace is None:
        raise NotFound("Invite not found")
    workspace_name = workspace.name

    consumed = await db.execute(
        update(WorkspaceInviteLink)
        .where(
            WorkspaceInviteLink.id == link.id,
            WorkspaceInviteLink.uses < WorkspaceInviteLink.max_uses,
            or_(
                WorkspaceInviteLink.expires_at.is_(None),
                WorkspaceInviteLink.expires_at > now,
            ),
        )
        .values(uses=WorkspaceInviteLink.uses + 1)
        .execution_options(synchronize_session=False)
    )
    if consumed.rowcount != 1:
        # Used up or expired since we read it
        await db.rollback()
        link = await _get_link_by_code(db, code)
        _ensure_usable(link, now)
        raise Gone("This invite is no longer available")

    db.add(
        WorkspaceMember(
            workspace_id=workspace_id,
            user_id=user.id,
            role=MemberRole.USER,
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # Uses increment is rolled back together with the duplicate insert
        await db.rollback()
        raise Conflict(ALREADY_MEMBER_MESSAGE, workspaceId=workspace_id) from None

    logger.info(
        "User %s joined workspace %s via invite link %s", user.id, workspace_id, link.id
    )
    return LinkAcceptResult(workspace_id=workspace_id, workspace_name=workspace_name)


async def delete_invite_link(db: AsyncSession, workspace_id: str, link_id: str) -> None:
    """Delete a link. Members who joined through it stay."""
    result = await db.execute(
        select(WorkspaceInviteLink).where(
            WorkspaceInviteLink.id == link_id,
            WorkspaceInviteLink.workspace_id == workspace_id,
        )
    )
    link = result.scalar_one_or_none()
    if link is None:
        raise NotFound("Invite link not found")

    await db.delete(link)
    await db.commit()
