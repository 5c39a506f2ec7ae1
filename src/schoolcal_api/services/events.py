"""Workspace events and attendance.

Attendance is one row per (event, user). Members mark their own; admins
can set many at once, and a bulk update is applied all-or-nothing in a
single commit.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from schoolcal_api.exceptions import Conflict, InvalidRequest, NotFound
from schoolcal_api.models import (
    Attendance,
    AttendanceStatus,
    Event,
    User,
    Workspace,
    WorkspaceMember,
)
from schoolcal_api.models.base import as_utc, to_utc, utc_now

logger = logging.getLogger(__name__)

ATTENDANCE_CONFLICT_MESSAGE = "Attendance was updated concurrently, please retry"


@dataclass
class EventView:
    event: Event
    attendance_count: int


@dataclass
class AttendanceSummary:
    total: int = 0
    present: int = 0
    absent: int = 0
    excused: int = 0
    pending: int = 0


def check_dates(start_date: datetime, end_date: datetime | None) -> None:
    if end_date is not None and as_utc(end_date) < as_utc(start_date):
        raise InvalidRequest("End date must be after start date")


def _event_query():
    return select(Event).options(selectinload(Event.created_by))


async def get_event(db: AsyncSession, workspace_id: str, event_id: str) -> Event:
    """Load an event of the workspace with its author."""
    result = await db.execute(
        _event_query()
        .where(Event.id == event_id)
        .execution_options(populate_existing=True)
    )
    event = result.scalar_one_or_none()
    if event is None or event.workspace_id != workspace_id:
        raise NotFound("Event not found")
    return event


async def _attendance_counts(db: AsyncSession, event_ids: list[str]) -> dict[str, int]:
    if not event_ids:
        return {}
    result = await db.execute(
        select(Attendance.event_id, func.count(Attendance.id))
        .where(Attendance.event_id.in_(event_ids))
        .group_by(Attendance.event_id)
    )
    return {event_id: count for event_id, count in result.all()}


async def list_events(
    db: AsyncSession,
    workspace_id: str,
    start_from: datetime | None = None,
    start_to: datetime | None = None,
) -> list[EventView]:
    """Events by start date, optionally limited to a start date window."""
    query = _event_query().where(Event.workspace_id == workspace_id)
    if start_from is not None:
        query = query.where(Event.start_date >= to_utc(start_from))
    if start_to is not None:
        query = query.where(Event.start_date <= to_utc(start_to))

    result = await db.execute(query.order_by(Event.start_date))
    events = list(result.scalars().all())
    counts = await _attendance_counts(db, [event.id for event in events])

    return [
        EventView(event=event, attendance_count=counts.get(event.id, 0))
        for event in events
    ]


async def get_user_attendance(
    db: AsyncSession, event_id: str, user_id: str
) -> Attendance | None:
    result = await db.execute(
        select(Attendance).where(
            Attendance.event_id == event_id,
            Attendance.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


async def create_event(
    db: AsyncSession,
    workspace_id: str,
    created_by_id: str,
    title: str,
    start_date: datetime,
    end_date: datetime | None = None,
    description: str | None = None,
    location: str | None = None,
) -> Event:
    check_dates(start_date, end_date)

    event = Event(
        workspace_id=workspace_id,
        created_by_id=created_by_id,
        title=title,
        description=description,
        start_date=to_utc(start_date),
        end_date=to_utc(end_date) if end_date is not None else None,
        location=location,
    )
    db.add(event)
    await db.commit()

    logger.info("Created event %s in workspace %s", event.id, workspace_id)
    return await get_event(db, workspace_id, event.id)


async def update_event(db: AsyncSession, event: Event, changes: dict[str, Any]) -> Event:
    """Apply a partial update; the resulting dates must still be in order."""
    for name in ("start_date", "end_date"):
        if changes.get(name) is not None:
            changes[name] = to_utc(changes[name])
    check_dates(
        changes.get("start_date", event.start_date),
        changes.get("end_date", event.end_date),
    )

    for name, value in changes.items():
        setattr(event, name, value)
    await db.commit()

    return await get_event(db, event.workspace_id, event.id)


async def delete_event(db: AsyncSession, workspace_id: str, event_id: str) -> None:
    event = await get_event(db, workspace_id, event_id)
    await db.delete(event)
    await db.commit()
    logger.info("Deleted event %s in workspace %s", event_id, workspace_id)


# --- Attendance ---


async def list_attendance(
    db: AsyncSession, event_id: str
) -> tuple[list[Attendance], AttendanceSummary]:
    """Attendance rows by user name, plus counts per status."""
    result = await db.execute(
        select(Attendance)
        .join(User, Attendance.user_id == User.id)
        .options(selectinload(Attendance.user))
        .where(Attendance.event_id == event_id)
        .order_by(User.name)
    )
    attendances = list(result.scalars().all())

    by_status = Counter(attendance.status for attendance in attendances)
    summary = AttendanceSummary(
        total=len(attendances),
        present=by_status[AttendanceStatus.PRESENT],
        absent=by_status[AttendanceStatus.ABSENT],
        excused=by_status[AttendanceStatus.EXCUSED],
        pending=by_status[AttendanceStatus.PENDING],
    )
    return attendances, summary


def _apply_status(attendance: Attendance, status: AttendanceStatus, now: datetime) -> None:
    attendance.status = status
    attendance.checked_at = now if status != AttendanceStatus.PENDING else None


async def mark_attendance(
    db: AsyncSession, event: Event, user_id: str, status: AttendanceStatus
) -> Attendance:
    """Set one user's attendance, creating the row on first use."""
    attendance = await get_user_attendance(db, event.id, user_id)
    if attendance is None:
        attendance = Attendance(event_id=event.id, user_id=user_id)
        db.add(attendance)
    _apply_status(attendance, status, utc_now())

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict(ATTENDANCE_CONFLICT_MESSAGE) from None

    result = await db.execute(
        select(Attendance)
        .options(selectinload(Attendance.user))
        .where(Attendance.event_id == event.id, Attendance.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    attendance = result.scalar_one()
    logger.debug("Attendance of %s at event %s set to %s", user_id, event.id, status.value)
    return attendance


async def _workspace_user_ids(db: AsyncSession, workspace_id: str) -> set[str]:
    """Ids of everyone with a role in the workspace, owner included."""
    result = await db.execute(
        select(WorkspaceMember.user_id).where(
            WorkspaceMember.workspace_id == workspace_id
        )
    )
    user_ids = set(result.scalars().all())
    owner = await db.execute(
        select(Workspace.owner_id).where(Workspace.id == workspace_id)
    )
    owner_id = owner.scalar_one_or_none()
    if owner_id is not None:
        user_ids.add(owner_id)
    return user_ids


async def bulk_update_attendance(
    db: AsyncSession,
    event: Event,
    updates: list[tuple[str, AttendanceStatus]],
) -> int:
    """Upsert many users' attendance at once.

    Every user must belong to the workspace and appear only once. Nothing is
    written unless the whole batch is valid, and the batch commits as one
    transaction.
    """
    user_ids = [user_id for user_id, _ in updates]
    duplicates = sorted(uid for uid, count in Counter(user_ids).items() if count > 1)
    if duplicates:
        raise InvalidRequest("Each user can appear only once", userIds=duplicates)

    allowed = await _workspace_user_ids(db, event.workspace_id)
    unknown = sorted(set(user_ids) - allowed)
    if unknown:
        raise InvalidRequest("Users are not members of this workspace", userIds=unknown)

    result = await db.execute(
        select(Attendance).where(
            Attendance.event_id == event.id,
            Attendance.user_id.in_(user_ids),
        )
    )
    existing = {attendance.user_id: attendance for attendance in result.scalars().all()}

    now = utc_now()
    for user_id, status in updates:
        attendance = existing.get(user_id)
        if attendance is None:
            attendance = Attendance(event_id=event.id, user_id=user_id)
            db.add(attendance)
        _apply_status(attendance, status, now)

    event_id = event.id
    try:
        await db.commit()
    except IntegrityError:
        # A concurrent request inserted one of the rows; none of ours stuck
        await db.rollback()
        raise Conflict(ATTENDANCE_CONFLICT_MESSAGE) from None

    logger.info("Updated %d attendance rows for event %s", len(updates), event_id)
    return len(updates)
