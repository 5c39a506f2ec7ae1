"""Event and attendance routes.

Members list and read events and mark their own attendance. Admins
manage events and can set attendance for many members in one request.
"""

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import get_current_user
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import Forbidden, InvalidRequest
from schoolcal_api.models import AttendanceStatus, User, WorkspaceRole
from schoolcal_api.schemas import ApiModel, MessageResponse, UserSummary, changed_fields
from schoolcal_api.services import events as event_service
from schoolcal_api.services.membership import require_admin, require_member

router = APIRouter(prefix="/workspaces/{workspace_id}/events", tags=["events"])


# --- Schemas ---


class EventCreate(ApiModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    start_date: datetime
    end_date: datetime | None = None
    location: str | None = Field(default=None, max_length=500)


class EventUpdate(ApiModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    start_date: datetime | None = None
    end_date: datetime | None = None
    location: str | None = Field(default=None, max_length=500)


class EventResponse(ApiModel):
    id: str
    workspace_id: str
    title: str
    description: str | None
    start_date: datetime
    end_date: datetime | None
    location: str | None
    created_by: UserSummary | None
    created_at: datetime
    updated_at: datetime


class EventWithCount(EventResponse):
    attendance_count: int


class EventEnvelope(ApiModel):
    event: EventResponse


class EventListResponse(ApiModel):
    events: list[EventWithCount]


class EventDetailResponse(ApiModel):
    event: EventResponse
    user_attendance_status: AttendanceStatus | None


class AttendanceEntry(ApiModel):
    user_id: str
    status: AttendanceStatus


class AttendanceUpdate(ApiModel):
    """Either the caller's own ``status`` or a bulk ``attendances`` list."""

    status: AttendanceStatus | None = None
    attendances: list[AttendanceEntry] | None = Field(default=None, min_length=1)


class AttendanceResponse(ApiModel):
    id: str
    event_id: str
    user_id: str
    status: AttendanceStatus
    checked_at: datetime | None
    user: UserSummary


class AttendanceEnvelope(ApiModel):
    attendance: AttendanceResponse


class AttendanceSummaryResponse(ApiModel):
    total: int
    present: int
    absent: int
    excused: int
    pending: int


class AttendanceListResponse(ApiModel):
    attendances: list[AttendanceResponse]
    summary: AttendanceSummaryResponse
    event_title: str


class BulkAttendanceResponse(ApiModel):
    message: str
    count: int


def event_with_count(view: event_service.EventView) -> EventWithCount:
    return EventWithCount(
        **EventResponse.model_validate(view.event).model_dump(),
        attendance_count=view.attendance_count,
    )


# --- Event endpoints ---


@router.get("", response_model=EventListResponse)
async def list_events(
    workspace_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    start_from: Annotated[datetime | None, Query(alias="startFrom")] = None,
    start_to: Annotated[datetime | None, Query(alias="startTo")] = None,
):
    """List events by start date."""
    await require_member(db, current_user.id, workspace_id)

    views = await event_service.list_events(
        db, workspace_id, start_from=start_from, start_to=start_to
    )
    return EventListResponse(events=[event_with_count(view) for view in views])


@router.post("", response_model=EventEnvelope, status_code=status.HTTP_201_CREATED)
async def create_event(
    workspace_id: str,
    data: EventCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create an event (admin only)."""
    await require_admin(db, current_user.id, workspace_id)

    event = await event_service.create_event(
        db,
        workspace_id,
        created_by_id=current_user.id,
        title=data.title,
        start_date=data.start_date,
        end_date=data.end_date,
        description=data.description,
        location=data.location,
    )
    return EventEnvelope(event=EventResponse.model_validate(event))


@router.get("/{event_id}", response_model=EventDetailResponse)
async def get_event(
    workspace_id: str,
    event_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get an event with the caller's attendance status."""
    await require_member(db, current_user.id, workspace_id)

    event = await event_service.get_event(db, workspace_id, event_id)
    attendance = await event_service.get_user_attendance(db, event_id, current_user.id)
    return EventDetailResponse(
        event=EventResponse.model_validate(event),
        user_attendance_status=attendance.status if attendance else None,
    )


@router.put("/{event_id}", response_model=EventEnvelope)
async def update_event(
    workspace_id: str,
    event_id: str,
    data: EventUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update an event (admin only). Null clears the optional fields."""
    await require_admin(db, current_user.id, workspace_id)

    event = await event_service.get_event(db, workspace_id, event_id)
    event = await event_service.update_event(
        db,
        event,
        changed_fields(data, nullable={"description", "end_date", "location"}),
    )
    return EventEnvelope(event=EventResponse.model_validate(event))


@router.delete("/{event_id}", response_model=MessageResponse)
async def delete_event(
    workspace_id: str,
    event_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await require_admin(db, current_user.id, workspace_id)

    await event_service.delete_event(db, workspace_id, event_id)
    return MessageResponse(message="Event deleted")


# --- Attendance endpoints ---


@router.get("/{event_id}/attendance", response_model=AttendanceListResponse)
async def list_attendance(
    workspace_id: str,
    event_id: str,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Attendance by member name with counts per status."""
    await require_member(db, current_user.id, workspace_id)

    event = await event_service.get_event(db, workspace_id, event_id)
    attendances, summary = await event_service.list_attendance(db, event_id)
    return AttendanceListResponse(
        attendances=[AttendanceResponse.model_validate(a) for a in attendances],
        summary=AttendanceSummaryResponse.model_validate(summary),
        event_title=event.title,
    )


@router.post(
    "/{event_id}/attendance",
    response_model=AttendanceEnvelope | BulkAttendanceResponse,
)
async def update_attendance(
    workspace_id: str,
    event_id: str,
    data: AttendanceUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Mark your own attendance, or (admins) many members' at once."""
    role = await require_member(db, current_user.id, workspace_id)
    event = await event_service.get_event(db, workspace_id, event_id)

    if data.attendances is not None:
        if role not in (WorkspaceRole.OWNER, WorkspaceRole.ADMIN):
            raise Forbidden("Admin access required for bulk updates")
        count = await event_service.bulk_update_attendance(
            db, event, [(entry.user_id, entry.status) for entry in data.attendances]
        )
        return BulkAttendanceResponse(message="Attendance updated", count=count)

    if data.status is None:
        raise InvalidRequest("Status is required")
    attendance = await event_service.mark_attendance(
        db, event, current_user.id, data.status
    )
    return AttendanceEnvelope(attendance=AttendanceResponse.model_validate(attendance))
