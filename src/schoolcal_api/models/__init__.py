"""Database models."""

from schoolcal_api.models.base import Base, TimestampMixin
from schoolcal_api.models.discipline import Discipline
from schoolcal_api.models.enums import (
    AttendanceStatus,
    InviteStatus,
    MemberRole,
    NotificationAction,
    NotificationChannel,
    NotificationType,
    TaskType,
    WorkspaceRole,
    WorkspaceType,
)
from schoolcal_api.models.event import Attendance, Event
from schoolcal_api.models.invite import WorkspaceInvite
from schoolcal_api.models.invite_link import WorkspaceInviteLink
from schoolcal_api.models.notification import Notification
from schoolcal_api.models.notification_preference import NotificationPreference
from schoolcal_api.models.password_reset import PasswordReset
from schoolcal_api.models.task import Task, TaskCompletion
from schoolcal_api.models.user import User
from schoolcal_api.models.vote import Vote, VoteOption, VoteResponse
from schoolcal_api.models.workspace import Workspace
from schoolcal_api.models.workspace_member import WorkspaceMember

__all__ = [
    "Attendance",
    "AttendanceStatus",
    "Base",
    "Discipline",
    "Event",
    "InviteStatus",
    "MemberRole",
    "Notification",
    "NotificationAction",
    "NotificationChannel",
    "NotificationPreference",
    "NotificationType",
    "PasswordReset",
    "Task",
    "TaskCompletion",
    "TaskType",
    "TimestampMixin",
    "User",
    "Vote",
    "VoteOption",
    "VoteResponse",
    "Workspace",
    "WorkspaceInvite",
    "WorkspaceInviteLink",
    "WorkspaceMember",
    "WorkspaceRole",
    "WorkspaceType",
]
