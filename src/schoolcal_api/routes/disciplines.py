"""Discipline routes. Members read, admins write."""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.models import TaskType, User
from schoolcal_api.schemas import ApiModel, MessageResponse, changed_fields
from schoolcal_api.services import disciplines as discipline_service
from schoolcal_api.services.membership import require_admin, require_member

router = APIRouter(prefix="/workspaces/{workspace_id}/disciplines", tags=["disciplines"])

COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# --- Schemas ---


class DisciplineCreate(ApiModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class DisciplineUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class DisciplineResponse(ApiModel):
    id: str
    workspace_id: str
    name: str
    description: str | None
    color: str | None
    created_at: datetime


class DisciplineListItem(DisciplineResponse):
    task_count: int


class DisciplineTask(ApiModel):
    id: str
    title: str
    type: TaskType
    due_date: datetime


class DisciplineDetail(DisciplineResponse):
    tasks: list[DisciplineTask]


class DisciplineEnvelope(ApiModel):
    discipline: DisciplineResponse


class DisciplineDetailEnvelope(ApiModel):
    discipline: DisciplineDetail


class DisciplineListResponse(ApiModel):
    disciplines: list[DisciplineListItem]


# --- Endpoints ---


@router.get("", response_model=DisciplineListResponse)
async def list_disciplines(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """List disciplines by name with their task counts."""
    await require_member(db, current_user.id, workspace_id)

    views = await discipline_service.list_disciplines(db, workspace_id)
    return DisciplineListResponse(
        disciplines=[
            DisciplineListItem(
                **DisciplineResponse.model_validate(view.discipline).model_dump(),
                task_count=view.task_count,
            )
            for view in views
        ]
    )


@router.post(
    "", response_model=DisciplineEnvelope, status_code=status.HTTP_201_CREATED
)
async def create_discipline(
    workspace_id: str,
    data: DisciplineCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a discipline (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    discipline = await discipline_service.create_discipline(
        db,
        workspace_id,
        name=data.name,
        description=data.description,
        color=data.color,
    )
    return DisciplineEnvelope(discipline=DisciplineResponse.model_validate(discipline))


@router.get("/{discipline_id}", response_model=DisciplineDetailEnvelope)
async def get_discipline(
    workspace_id: str,
    discipline_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get a discipline with its tasks by due date."""
    await require_member(db, current_user.id, workspace_id)

    discipline = await discipline_service.get_discipline(db, workspace_id, discipline_id)
    tasks = await discipline_service.list_discipline_tasks(db, discipline_id)
    return DisciplineDetailEnvelope(
        discipline=DisciplineDetail(
            **DisciplineResponse.model_validate(discipline).model_dump(),
            tasks=[DisciplineTask.model_validate(task) for task in tasks],
        )
    )


@router.put("/{discipline_id}", response_model=DisciplineEnvelope)
async def update_discipline(
    workspace_id: str,
    discipline_id: str,
    data: DisciplineUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a discipline (admin only). Null clears description or color."""
    await require_admin(db, current_user.id, workspace_id)

    discipline = await discipline_service.get_discipline(db, workspace_id, discipline_id)
    discipline = await discipline_service.update_discipline(
        db, discipline, changed_fields(data, nullable={"description", "color"})
    )
    return DisciplineEnvelope(discipline=DisciplineResponse.model_validate(discipline))


@router.delete("/{discipline_id}", response_model=MessageResponse)
async def delete_discipline(
    workspace_id: str,
    discipline_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Delete a discipline (admin only). Its tasks are kept."""
    await require_admin(db, current_user.id, workspace_id)

    await discipline_service.delete_discipline(db, workspace_id, discipline_id)
    return MessageResponse(message="Discipline deleted")
