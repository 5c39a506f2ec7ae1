"""Pydantic schemas shared across routes.

JSON on the wire is camelCase. Requests accept either camelCase or the
snake_case field names.
"""

from collections.abc import Collection
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base for all request/response schemas."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(ApiModel):
    message: str


def changed_fields(data: BaseModel, nullable: Collection[str] = ()) -> dict[str, Any]:
    """Fields the client sent, by attribute name.

    An explicit null only counts for fields listed in ``nullable``; for the
    rest it means "leave unchanged".
    """
    return {
        field: value
        for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in nullable
    }


# --- Passwords ---

# bcrypt rejects input longer than 72 bytes, not characters
PASSWORD_MAX_BYTES = 72


def check_password_bytes(value: str) -> str:
    """Reject passwords bcrypt can't hash (multi-byte characters count double)."""
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


# --- User Schemas ---


class UserResponse(ApiModel):
    """Public view of a user (never includes the password hash)."""

    id: str
    name: str
    email: str
    created_at: datetime


class UserEnvelope(ApiModel):
    user: UserResponse


class OptionalUserEnvelope(ApiModel):
    user: UserResponse | None = None


class AuthResponse(ApiModel):
    """Response of register and login."""

    message: str
    user: UserResponse


class UserSummary(ApiModel):
    """Author or participant shown inline on workspace content."""

    id: str
    name: str
