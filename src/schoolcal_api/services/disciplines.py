"""Disciplines: the school subjects a workspace files its tasks under."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.exceptions import InvalidRequest, NotFound
from schoolcal_api.models import Discipline, Task

logger = logging.getLogger(__name__)


@dataclass
class DisciplineView:
    discipline: Discipline
    task_count: int


async def get_discipline(
    db: AsyncSession, workspace_id: str, discipline_id: str
) -> Discipline:
    """Load a discipline of the workspace; other workspaces' ids are 404."""
    discipline = await db.get(Discipline, discipline_id)
    if discipline is None or discipline.workspace_id != workspace_id:
        raise NotFound("Discipline not found")
    return discipline


async def check_discipline(
    db: AsyncSession, workspace_id: str, discipline_id: str | None
) -> None:
    """Validate a discipline reference in a task payload."""
    if discipline_id is None:
        return
    discipline = await db.get(Discipline, discipline_id)
    if discipline is None or discipline.workspace_id != workspace_id:
        raise InvalidRequest("Invalid discipline")


async def list_disciplines(db: AsyncSession, workspace_id: str) -> list[DisciplineView]:
    """Disciplines by name, each with its number of tasks."""
    task_counts = (
        select(Task.discipline_id, func.count(Task.id).label("task_count"))
        .group_by(Task.discipline_id)
        .subquery()
    )
    result = await db.execute(
        select(Discipline, func.coalesce(task_counts.c.task_count, 0))
        .outerjoin(task_counts, task_counts.c.discipline_id == Discipline.id)
        .where(Discipline.workspace_id == workspace_id)
        .order_by(Discipline.name)
    )
    return [
        DisciplineView(discipline=discipline, task_count=count)
        for discipline, count in result.all()
    ]


async def list_discipline_tasks(db: AsyncSession, discipline_id: str) -> list[Task]:
    result = await db.execute(
        select(Task).where(Task.discipline_id == discipline_id).order_by(Task.due_date)
    )
    return list(result.scalars().all())


async def create_discipline(
    db: AsyncSession,
    workspace_id: str,
    name: str,
    description: str | None = None,
    color: str | None = None,
) -> Discipline:
    discipline = Discipline(
        workspace_id=workspace_id,
        name=name,
        description=description,
        color=color,
    )
    db.add(discipline)
    await db.commit()
    await db.refresh(discipline)

    logger.info("Created discipline %s in workspace %s", discipline.id, workspace_id)
    return discipline


async def update_discipline(
    db: AsyncSession, discipline: Discipline, changes: dict[str, Any]
) -> Discipline:
    for field, value in changes.items():
        setattr(discipline, field, value)
    await db.commit()
    await db.refresh(discipline)
    return discipline


async def delete_discipline(
    db: AsyncSession, workspace_id: str, discipline_id: str
) -> None:
    """Delete a discipline. Its tasks stay, without a discipline."""
    discipline = await get_discipline(db, workspace_id, discipline_id)

    await db.execute(
        update(Task)
        .where(Task.discipline_id == discipline_id)
        .values(discipline_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(discipline)
    await db.commit()

    logger.info("Deleted discipline %s in workspace %s", discipline_id, workspace_id)
