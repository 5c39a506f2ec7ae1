"""Task routes.

Members list, read and toggle their own completion; admins create, edit
and delete.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.models import TaskType, User
from schoolcal_api.schemas import ApiModel, MessageResponse, UserSummary, changed_fields
from schoolcal_api.services import tasks as task_service
from schoolcal_api.services.membership import require_admin, require_member

router = APIRouter(prefix="/workspaces/{workspace_id}/tasks", tags=["tasks"])


# --- Schemas ---


class TaskCreate(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    type: TaskType
    due_date: datetime
    discipline_id: str | None = None


class TaskUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    type: TaskType | None = None
    due_date: datetime | None = None
    discipline_id: str | None = None


class TaskDiscipline(ApiModel):
    id: str
    name: str
    color: str | None


class TaskResponse(ApiModel):
    id: str
    workspace_id: str
    title: str
    description: str | None
    type: TaskType
    due_date: datetime
    discipline: TaskDiscipline | None
    created_by: UserSummary | None
    created_at: datetime
    updated_at: datetime


class TaskWithState(TaskResponse):
    is_completed: bool
    completed_at: datetime | None
    completion_count: int


class TaskEnvelope(ApiModel):
    task: TaskResponse


class TaskListResponse(ApiModel):
    tasks: list[TaskWithState]
    count: int


class TaskDetailResponse(ApiModel):
    task: TaskWithState
    is_completed: bool
    completed_at: datetime | None
    completed_by: list[UserSummary]


class TaskCompletionResponse(ApiModel):
    message: str
    completed: bool
    completed_at: datetime | None


def task_with_state(view: task_service.TaskView) -> TaskWithState:
    return TaskWithState(
        **TaskResponse.model_validate(view.task).model_dump(),
        is_completed=view.is_completed,
        completed_at=view.completed_at,
        completion_count=view.completion_count,
    )


# --- Endpoints ---


@router.get("", response_model=TaskListResponse)
async def list_tasks(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    type: TaskType | None = None,
    discipline_id: Annotated[str | None, Query(alias="disciplineId")] = None,
    due_from: Annotated[datetime | None, Query(alias="dueFrom")] = None,
    due_to: Annotated[datetime | None, Query(alias="dueTo")] = None,
    completed: bool | None = None,
):
    """List tasks by due date. ``completed`` filters on the caller's own state."""
    await require_member(db, current_user.id, workspace_id)

    views = await task_service.list_tasks(
        db,
        workspace_id,
        current_user.id,
        task_service.TaskFilters(
            type=type,
            discipline_id=discipline_id,
            due_from=due_from,
            due_to=due_to,
            completed=completed,
        ),
    )
    return TaskListResponse(
        tasks=[task_with_state(view) for view in views], count=len(views)
    )


@router.post("", response_model=TaskEnvelope, status_code=status.HTTP_201_CREATED)
async def create_task(
    workspace_id: str,
    data: TaskCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a task (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    task = await task_service.create_task(
        db,
        workspace_id,
        created_by_id=current_user.id,
        title=data.title,
        type=data.type,
        due_date=data.due_date,
        description=data.description,
        discipline_id=data.discipline_id,
    )
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.get("/{task_id}", response_model=TaskDetailResponse)
async def get_task(
    workspace_id: str,
    task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await require_member(db, current_user.id, workspace_id)

    detail = await task_service.get_task_detail(db, workspace_id, task_id, current_user.id)
    return TaskDetailResponse(
        task=task_with_state(detail.view),
        is_completed=detail.view.is_completed,
        completed_at=detail.view.completed_at,
        completed_by=[UserSummary.model_validate(user) for user in detail.completed_by],
    )


@router.put("/{task_id}", response_model=TaskEnvelope)
async def update_task(
    workspace_id: str,
    task_id: str,
    data: TaskUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update a task (admin only). A null disciplineId or description clears it."""
    await require_admin(db, current_user.id, workspace_id)

    task = await task_service.get_task(db, workspace_id, task_id)
    task = await task_service.update_task(
        db, task, changed_fields(data, nullable={"description", "discipline_id"})
    )
    return TaskEnvelope(task=TaskResponse.model_validate(task))


@router.delete("/{task_id}", response_model=MessageResponse)
async def delete_task(
    workspace_id: str,
    task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await require_admin(db, current_user.id, workspace_id)

    await task_service.delete_task(db, workspace_id, task_id)
    return MessageResponse(message="Task deleted")


@router.post("/{task_id}/complete", response_model=TaskCompletionResponse)
async def toggle_task_completion(
    workspace_id: str,
    task_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Toggle the caller's completion of a task."""
    await require_member(db, current_user.id, workspace_id)

    toggle = await task_service.toggle_completion(
        db, workspace_id, task_id, current_user.id
    )
    if toggle.completed:
        message = "Task marked as complete"
    else:
        message = "Task marked as incomplete"
    return TaskCompletionResponse(
        message=message,
        completed=toggle.completed,
        completed_at=toggle.completed_at,
    )
