"""Polls in workspaces that have voting turned on.

Every read and write except deletion goes through ensure_voting_enabled,
so switching voting off hides existing polls without deleting them.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolcal_api.exceptions import Conflict, InvalidRequest, NotFound
from schoolcal_api.models import (
    NotificationType,
    User,
    Vote,
    VoteOption,
    VoteResponse,
    Workspace,
    WorkspaceMember,
)
from schoolcal_api.models.base import to_utc
from schoolcal_api.services.notifications import create_notification

logger = logging.getLogger(__name__)


@dataclass
class VoteRespondResult:
    response: VoteResponse
    changed: bool


async def ensure_voting_enabled(db: AsyncSession, workspace_id: str) -> None:
    result = await db.execute(
        select(Workspace.voting_enabled).where(Workspace.id == workspace_id)
    )
    if not result.scalar_one_or_none():
        raise InvalidRequest("Voting is not enabled for this workspace")


def _vote_query():
    return select(Vote).options(
        selectinload(Vote.created_by),
        selectinload(Vote.options)
        .selectinload(VoteOption.responses)
        .selectinload(VoteResponse.user),
    )


async def get_vote(db: AsyncSession, workspace_id: str, vote_id: str) -> Vote:
    """Load a vote with its options, their responses and the responders."""
    result = await db.execute(
        _vote_query()
        .where(Vote.id == vote_id)
        .execution_options(populate_existing=True)
    )
    vote = result.scalar_one_or_none()
    if vote is None or vote.workspace_id != workspace_id:
        raise NotFound("Vote not found")
    return vote


async def list_votes(db: AsyncSession, workspace_id: str) -> list[Vote]:
    """Votes, newest first."""
    result = await db.execute(
        _vote_query()
        .where(Vote.workspace_id == workspace_id)
        .order_by(Vote.created_at.desc())
    )
    return list(result.scalars().all())


def user_choice(vote: Vote, user_id: str) -> str | None:
    """The option id the user picked, if any. Needs a vote from get_vote."""
    for option in vote.options:
        if any(response.user_id == user_id for response in option.responses):
            return option.id
    return None


async def create_vote(
    db: AsyncSession,
    workspace: Workspace,
    creator: User,
    title: str,
    options: list[str],
    description: str | None = None,
    expires_at: datetime | None = None,
) -> Vote:
    """Create a vote and notify the other members in the same commit."""
    vote = Vote(
        workspace_id=workspace.id,
        created_by_id=creator.id,
        title=title,
        description=description,
        expires_at=to_utc(expires_at) if expires_at is not None else None,
        options=[
            VoteOption(text=text, position=position)
            for position, text in enumerate(options)
        ],
    )
    db.add(vote)
    await db.flush()

    result = await db.execute(
        select(WorkspaceMember.user_id).where(
            WorkspaceMember.workspace_id == workspace.id,
            WorkspaceMember.user_id != creator.id,
        )
    )
    for user_id in result.scalars().all():
        await create_notification(
            db,
            user_id=user_id,
            type=NotificationType.VOTE_CREATED,
            title="New vote",
            message=f'{creator.name} started a vote in {workspace.name}: "{title}"',
            reference_id=vote.id,
        )
    await db.commit()

    logger.info("Created vote %s in workspace %s", vote.id, workspace.id)
    return await get_vote(db, workspace.id, vote.id)


async def delete_vote(db: AsyncSession, workspace_id: str, vote_id: str) -> None:
    vote = await get_vote(db, workspace_id, vote_id)
    await db.delete(vote)
    await db.commit()
    logger.info("Deleted vote %s in workspace %s", vote_id, workspace_id)


async def respond_to_vote(
    db: AsyncSession, vote: Vote, user_id: str, option_id: str
) -> VoteRespondResult:
    """Record the user's choice, replacing an earlier one."""
    if vote.is_expired():
        raise InvalidRequest("This vote has expired")
    if option_id not in {option.id for option in vote.options}:
        raise InvalidRequest("Invalid option")

    result = await db.execute(
        select(VoteResponse).where(
            VoteResponse.vote_id == vote.id,
            VoteResponse.user_id == user_id,
        )
    )
    response = result.scalar_one_or_none()
    changed = response is not None
    if response is None:
        response = VoteResponse(vote_id=vote.id, user_id=user_id, option_id=option_id)
        db.add(response)
    else:
        response.option_id = option_id

    vote_id = vote.id
    try:
        await db.commit()
    except IntegrityError:
        # Another submission by the same user got in first
        await db.rollback()
        raise Conflict("Vote changed concurrently, please retry") from None

    result = await db.execute(
        select(VoteResponse)
        .options(selectinload(VoteResponse.option))
        .where(VoteResponse.vote_id == vote_id, VoteResponse.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return VoteRespondResult(response=result.scalar_one(), changed=changed)
