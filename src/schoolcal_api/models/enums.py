"""Enumeration types for database models."""

import enum


class MemberRole(str, enum.Enum):
    """Role stored on a workspace membership row."""

    ADMIN = "ADMIN"  # Can manage members, invites and workspace settings
    USER = "USER"  # Regular class member


class WorkspaceRole(str, enum.Enum):
    """Effective role of a user in a workspace.

    OWNER is never stored on a membership row; it is derived from
    Workspace.owner_id and takes precedence over the row's role.
    """

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    USER = "USER"


class WorkspaceType(str, enum.Enum):
    """Kind of workspace."""

    CLASS = "CLASS"
    PERSONAL = "PERSONAL"


class InviteStatus(str, enum.Enum):
    """Status of a directed email invite."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class NotificationType(str, enum.Enum):
    """Kinds of inbox notifications."""

    EVENT_REMINDER = "EVENT_REMINDER"
    TASK_DEADLINE = "TASK_DEADLINE"
    VOTE_CREATED = "VOTE_CREATED"
    GROUP_ASSIGNED = "GROUP_ASSIGNED"
    WORKSPACE_INVITE = "WORKSPACE_INVITE"  # Actionable: accept / decline
    GENERAL = "GENERAL"


class NotificationChannel(str, enum.Enum):
    """Delivery channels a notification is addressed to."""

    EMAIL = "EMAIL"
    SMS = "SMS"
    PUSH = "PUSH"


class NotificationAction(str, enum.Enum):
    """Actions available on actionable notifications."""

    ACCEPT = "accept"
    DECLINE = "decline"


class TaskType(str, enum.Enum):
    """Kind of assignment a task tracks."""

    TRABALHO = "TRABALHO"  # Written assignment
    TESTE = "TESTE"  # Test or exam
    PROJETO = "PROJETO"  # Project
    TAREFA = "TAREFA"  # Homework


class AttendanceStatus(str, enum.Enum):
    """Attendance of one user at one event."""

    PENDING = "PENDING"  # Not checked yet
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    EXCUSED = "EXCUSED"
