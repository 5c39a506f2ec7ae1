"""Vote routes. Only usable in workspaces with voting enabled."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.models import User, Vote
from schoolcal_api.routes.workspaces import get_workspace_or_404
from schoolcal_api.schemas import ApiModel, MessageResponse, UserSummary
from schoolcal_api.services import votes as vote_service
from schoolcal_api.services.membership import require_admin, require_member

router = APIRouter(prefix="/workspaces/{workspace_id}/votes", tags=["votes"])


# --- Schemas ---


class VoteCreate(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    options: list[str] = Field(min_length=Vote.MIN_OPTIONS, max_length=Vote.MAX_OPTIONS)
    expires_at: datetime | None = None

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: list[str]) -> list[str]:
        options = [option.strip() for option in v]
        if any(not option for option in options):
            raise ValueError("Options cannot be empty")
        if any(len(option) > 200 for option in options):
            raise ValueError("Options must be at most 200 characters")
        return options


class VoteRespond(ApiModel):
    option_id: str


class VoteOptionResponse(ApiModel):
    id: str
    text: str
    position: int
    count: int
    voters: list[UserSummary]


class VoteResponseBody(ApiModel):
    id: str
    workspace_id: str
    title: str
    description: str | None
    expires_at: datetime | None
    is_expired: bool
    created_by: UserSummary | None
    created_at: datetime
    options: list[VoteOptionResponse]
    total_responses: int


class VoteEnvelope(ApiModel):
    vote: VoteResponseBody


class VoteListItem(VoteResponseBody):
    user_voted_option_id: str | None


class VoteListResponse(ApiModel):
    votes: list[VoteListItem]


class VoteDetailResponse(ApiModel):
    vote: VoteResponseBody
    user_voted_option_id: str | None


class ChosenOption(ApiModel):
    id: str
    text: str


class VoteChoice(ApiModel):
    id: str
    vote_id: str
    option_id: str
    user_id: str
    option: ChosenOption


class VoteRespondResponse(ApiModel):
    message: str
    response: VoteChoice


def vote_body(vote: Vote) -> VoteResponseBody:
    options = [
        VoteOptionResponse(
            id=option.id,
            text=option.text,
            position=option.position,
            count=len(option.responses),
            voters=[UserSummary.model_validate(r.user) for r in option.responses],
        )
        for option in vote.options
    ]
    return VoteResponseBody(
        id=vote.id,
        workspace_id=vote.workspace_id,
        title=vote.title,
        description=vote.description,
        expires_at=vote.expires_at,
        is_expired=vote.is_expired(),
        created_by=(
            UserSummary.model_validate(vote.created_by) if vote.created_by else None
        ),
        created_at=vote.created_at,
        options=options,
        total_responses=sum(option.count for option in options),
    )


# --- Endpoints ---


@router.get("", response_model=VoteListResponse)
async def list_votes(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List votes, newest first, with the caller's choice in each."""
    await require_member(db, current_user.id, workspace_id)
    await vote_service.ensure_voting_enabled(db, workspace_id)

    votes = await vote_service.list_votes(db, workspace_id)
    return VoteListResponse(
        votes=[
            VoteListItem(
                **vote_body(vote).model_dump(),
                user_voted_option_id=vote_service.user_choice(vote, current_user.id),
            )
            for vote in votes
        ]
    )


@router.post("", response_model=VoteEnvelope, status_code=status.HTTP_201_CREATED)
async def create_vote(
    workspace_id: str,
    data: VoteCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a vote (admin only). Other members are notified."""
    await require_admin(db, current_user.id, workspace_id)
    await vote_service.ensure_voting_enabled(db, workspace_id)

    workspace = await get_workspace_or_404(db, workspace_id)
    vote = await vote_service.create_vote(
        db,
        workspace,
        current_user,
        title=data.title,
        options=data.options,
        description=data.description,
        expires_at=data.expires_at,
    )
    return VoteEnvelope(vote=vote_body(vote))


@router.get("/{vote_id}", response_model=VoteDetailResponse)
async def get_vote(
    workspace_id: str,
    vote_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await require_member(db, current_user.id, workspace_id)
    await vote_service.ensure_voting_enabled(db, workspace_id)

    vote = await vote_service.get_vote(db, workspace_id, vote_id)
    return VoteDetailResponse(
        vote=vote_body(vote),
        user_voted_option_id=vote_service.user_choice(vote, current_user.id),
    )


@router.delete("/{vote_id}", response_model=MessageResponse)
async def delete_vote(
    workspace_id: str,
    vote_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a vote (admin only). Works even with voting switched off."""
    await require_admin(db, current_user.id, workspace_id)

    await vote_service.delete_vote(db, workspace_id, vote_id)
    return MessageResponse(message="Vote deleted")


@router.post("/{vote_id}/respond", response_model=VoteRespondResponse)
async def respond_to_vote(
    workspace_id: str,
    vote_id: str,
    data: VoteRespond,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Pick an option. Responding again changes the caller's choice."""
    await require_member(db, current_user.id, workspace_id)
    await vote_service.ensure_voting_enabled(db, workspace_id)

    vote = await vote_service.get_vote(db, workspace_id, vote_id)
    result = await vote_service.respond_to_vote(
        db, vote, current_user.id, data.option_id
    )
    return VoteRespondResponse(
        message="Vote changed" if result.changed else "Vote submitted",
        response=VoteChoice.model_validate(result.response),
    )
