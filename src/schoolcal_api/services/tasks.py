"""Workspace tasks and per-user completion.

A task belongs to the whole workspace; whether it is done is tracked per
user in TaskCompletion rows, one per (task, user), toggled in place.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolcal_api.exceptions import Conflict, NotFound
from schoolcal_api.models import Task, TaskCompletion, TaskType, User
from schoolcal_api.models.base import to_utc, utc_now
from schoolcal_api.services.disciplines import check_discipline

logger = logging.getLogger(__name__)


@dataclass
class TaskFilters:
    type: TaskType | None = None
    discipline_id: str | None = None
    due_from: datetime | None = None
    due_to: datetime | None = None
    # Filters on the caller's own completion state
    completed: bool | None = None


@dataclass
class TaskView:
    """A task as seen by one user."""

    task: Task
    is_completed: bool
    completed_at: datetime | None
    completion_count: int = 0


@dataclass
class TaskDetail:
    view: TaskView
    completed_by: list[User] = field(default_factory=list)


@dataclass
class CompletionToggle:
    completed: bool
    completed_at: datetime | None


def _task_query():
    return select(Task).options(
        selectinload(Task.discipline), selectinload(Task.created_by)
    )


async def get_task(db: AsyncSession, workspace_id: str, task_id: str) -> Task:
    """Load a task of the workspace with its discipline and author."""
    result = await db.execute(
        _task_query()
        .where(Task.id == task_id)
        .execution_options(populate_existing=True)
    )
    task = result.scalar_one_or_none()
    if task is None or task.workspace_id != workspace_id:
        raise NotFound("Task not found")
    return task


async def _completion_counts(db: AsyncSession, task_ids: list[str]) -> dict[str, int]:
    if not task_ids:
        return {}
    result = await db.execute(
        select(TaskCompletion.task_id, func.count(TaskCompletion.id))
        .where(
            TaskCompletion.task_id.in_(task_ids),
            TaskCompletion.completed.is_(True),
        )
        .group_by(TaskCompletion.task_id)
    )
    return {task_id: count for task_id, count in result.all()}


async def list_tasks(
    db: AsyncSession,
    workspace_id: str,
    user_id: str,
    filters: TaskFilters | None = None,
) -> list[TaskView]:
    """Tasks by due date, each with the user's own completion state."""
    filters = filters or TaskFilters()
    query = (
        _task_query()
        .add_columns(TaskCompletion.completed, TaskCompletion.completed_at)
        .outerjoin(
            TaskCompletion,
            and_(
                TaskCompletion.task_id == Task.id,
                TaskCompletion.user_id == user_id,
            ),
        )
        .where(Task.workspace_id == workspace_id)
    )
    if filters.type is not None:
        query = query.where(Task.type == filters.type)
    if filters.discipline_id is not None:
        query = query.where(Task.discipline_id == filters.discipline_id)
    if filters.due_from is not None:
        query = query.where(Task.due_date >= to_utc(filters.due_from))
    if filters.due_to is not None:
        query = query.where(Task.due_date <= to_utc(filters.due_to))
    if filters.completed is True:
        query = query.where(TaskCompletion.completed.is_(True))
    elif filters.completed is False:
        query = query.where(
            or_(TaskCompletion.id.is_(None), TaskCompletion.completed.is_(False))
        )

    result = await db.execute(query.order_by(Task.due_date))
    rows = result.all()
    counts = await _completion_counts(db, [task.id for task, _, _ in rows])

    return [
        TaskView(
            task=task,
            is_completed=bool(completed),
            completed_at=completed_at if completed else None,
            completion_count=counts.get(task.id, 0),
        )
        for task, completed, completed_at in rows
    ]


async def get_task_detail(
    db: AsyncSession, workspace_id: str, task_id: str, user_id: str
) -> TaskDetail:
    """A task with the caller's completion state and who has completed it."""
    task = await get_task(db, workspace_id, task_id)

    result = await db.execute(
        select(TaskCompletion, User)
        .join(User, TaskCompletion.user_id == User.id)
        .where(TaskCompletion.task_id == task_id, TaskCompletion.completed.is_(True))
        .order_by(TaskCompletion.completed_at)
    )
    rows = result.all()
    own = next((c for c, _ in rows if c.user_id == user_id), None)

    return TaskDetail(
        view=TaskView(
            task=task,
            is_completed=own is not None,
            completed_at=own.completed_at if own is not None else None,
            completion_count=len(rows),
        ),
        completed_by=[user for _, user in rows],
    )


async def create_task(
    db: AsyncSession,
    workspace_id: str,
    created_by_id: str,
    title: str,
    type: TaskType,
    due_date: datetime,
    description: str | None = None,
    discipline_id: str | None = None,
) -> Task:
    """Create a task. The discipline, if any, must belong to the workspace."""
    await check_discipline(db, workspace_id, discipline_id)

    task = Task(
        workspace_id=workspace_id,
        created_by_id=created_by_id,
        title=title,
        description=description,
        type=type,
        due_date=to_utc(due_date),
        discipline_id=discipline_id,
    )
    db.add(task)
    await db.commit()

    logger.info("Created task %s in workspace %s", task.id, workspace_id)
    return await get_task(db, workspace_id, task.id)


async def update_task(db: AsyncSession, task: Task, changes: dict[str, Any]) -> Task:
    if "discipline_id" in changes:
        await check_discipline(db, task.workspace_id, changes["discipline_id"])
    if "due_date" in changes:
        changes["due_date"] = to_utc(changes["due_date"])

    for name, value in changes.items():
        setattr(task, name, value)
    await db.commit()

    return await get_task(db, task.workspace_id, task.id)


async def delete_task(db: AsyncSession, workspace_id: str, task_id: str) -> None:
    task = await get_task(db, workspace_id, task_id)
    await db.delete(task)
    await db.commit()
    logger.info("Deleted task %s in workspace %s", task_id, workspace_id)


async def toggle_completion(
    db: AsyncSession, workspace_id: str, task_id: str, user_id: str
) -> CompletionToggle:
    """Flip the user's completion of a task; the first toggle completes it."""
    await get_task(db, workspace_id, task_id)

    result = await db.execute(
        select(TaskCompletion).where(
            TaskCompletion.task_id == task_id,
            TaskCompletion.user_id == user_id,
        )
    )
    completion = result.scalar_one_or_none()
    now = utc_now()
    if completion is None:
        completion = TaskCompletion(
            task_id=task_id, user_id=user_id, completed=True, completed_at=now
        )
        db.add(completion)
    else:
        completion.completed = not completion.completed
        completion.completed_at = now if completion.completed else None

    completed = completion.completed
    completed_at = completion.completed_at
    try:
        await db.commit()
    except IntegrityError:
        # Another request created the row first
        await db.rollback()
        raise Conflict("Task completion changed concurrently, please retry") from None

    return CompletionToggle(completed=completed, completed_at=completed_at)
