"""Calendar view: a workspace's events and tasks merged on one timeline."""

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.models.base import as_utc
from schoolcal_api.services.events import EventView, list_events
from schoolcal_api.services.tasks import TaskFilters, TaskView, list_tasks


@dataclass
class CalendarItem:
    """An event (dated by start) or a task (dated by due date)."""

    date: datetime
    event: EventView | None = None
    task: TaskView | None = None


async def get_calendar(
    db: AsyncSession,
    workspace_id: str,
    user_id: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> list[CalendarItem]:
    """Events and tasks in the window, ordered by date. Events sort first on ties."""
    events = await list_events(db, workspace_id, start_from=start_date, start_to=end_date)
    tasks = await list_tasks(
        db,
        workspace_id,
        user_id,
        TaskFilters(due_from=start_date, due_to=end_date),
    )

    items = [CalendarItem(date=as_utc(view.event.start_date), event=view) for view in events]
    items += [CalendarItem(date=as_utc(view.task.due_date), task=view) for view in tasks]
    # sorted() is stable, so events stay ahead of tasks at the same instant
    return sorted(items, key=lambda item: item.date)
