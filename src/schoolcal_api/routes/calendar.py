"""Calendar route: events and tasks of a workspace in one list."""

from datetime import datetime
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.models import TaskType, User
from schoolcal_api.routes.tasks import TaskDiscipline
from schoolcal_api.schemas import ApiModel, UserSummary
from schoolcal_api.services import calendar as calendar_service
from schoolcal_api.services.calendar import CalendarItem
from schoolcal_api.services.membership import require_member

router = APIRouter(prefix="/workspaces/{workspace_id}/calendar", tags=["calendar"])


class CalendarEntry(ApiModel):
    """One timeline entry. Event-only and task-only fields are null otherwise."""

    id: str
    type: Literal["event", "task"]
    title: str
    description: str | None
    date: datetime
    created_by: UserSummary | None
    # Events
    end_date: datetime | None = None
    location: str | None = None
    attendance_count: int | None = None
    # Tasks
    task_type: TaskType | None = None
    discipline: TaskDiscipline | None = None
    is_completed: bool | None = None


class CalendarResponse(ApiModel):
    items: list[CalendarEntry]
    event_count: int
    task_count: int


def _entry(item: CalendarItem) -> CalendarEntry:
    if item.event is not None:
        event = item.event.event
        return CalendarEntry(
            id=event.id,
            type="event",
            title=event.title,
            description=event.description,
            date=item.date,
            created_by=UserSummary.model_validate(event.created_by)
            if event.created_by
            else None,
            end_date=event.end_date,
            location=event.location,
            attendance_count=item.event.attendance_count,
        )

    task = item.task.task
    return CalendarEntry(
        id=task.id,
        type="task",
        title=task.title,
        description=task.description,
        date=item.date,
        created_by=UserSummary.model_validate(task.created_by)
        if task.created_by
        else None,
        task_type=task.type,
        discipline=TaskDiscipline.model_validate(task.discipline)
        if task.discipline
        else None,
        is_completed=item.task.is_completed,
    )


@router.get("", response_model=CalendarResponse)
async def get_calendar(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    start_date: Annotated[datetime | None, Query(alias="startDate")] = None,
    end_date: Annotated[datetime | None, Query(alias="endDate")] = None,
):
    """Events and tasks between startDate and endDate, ordered by date."""
    await require_member(db, current_user.id, workspace_id)

    items = await calendar_service.get_calendar(
        db, workspace_id, current_user.id, start_date=start_date, end_date=end_date
    )
    entries = [_entry(item) for item in items]
    return CalendarResponse(
        items=entries,
        event_count=sum(1 for entry in entries if entry.type == "event"),
        task_count=sum(1 for entry in entries if entry.type == "task"),
    )
