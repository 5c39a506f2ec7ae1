"""Current user routes: profile, password and notification settings."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import (
    get_current_user,
    get_current_user_optional,
    hash_password,
    verify_password,
)
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import Conflict, InvalidRequest
from schoolcal_api.models import NotificationPreference, User
from schoolcal_api.routes.auth import PASSWORD_MAX_LENGTH
from schoolcal_api.schemas import (
    ApiModel,
    MessageResponse,
    OptionalUserEnvelope,
    UserEnvelope,
    UserResponse,
    check_password_bytes,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/user", tags=["user"])


# --- Schemas ---


class ProfileUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=2, max_length=100)
    email: EmailStr | None = None


class PasswordChange(ApiModel):
    current_password: str = Field(min_length=1, max_length=PASSWORD_MAX_LENGTH)
    new_password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("new_password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return check_password_bytes(v)


class PreferencesResponse(ApiModel):
    email_enabled: bool
    sms_enabled: bool
    push_enabled: bool
    reminder_days_before: int
    reminder_on_day: bool


class PreferencesEnvelope(ApiModel):
    preferences: PreferencesResponse


class PreferencesUpdate(ApiModel):
    email_enabled: bool | None = None
    sms_enabled: bool | None = None
    push_enabled: bool | None = None
    reminder_days_before: int | None = Field(default=None, ge=0, le=30)
    reminder_on_day: bool | None = None


# --- Helper functions ---


async def get_or_create_preferences(
    db: AsyncSession, user_id: str
) -> NotificationPreference:
    """Load the user's preferences, creating the defaults on first access."""
    result = await db.execute(
        select(NotificationPreference).where(NotificationPreference.user_id == user_id)
    )
    preferences = result.scalar_one_or_none()
    if preferences is None:
        preferences = NotificationPreference(user_id=user_id)
        db.add(preferences)
        await db.commit()
        await db.refresh(preferences)
    return preferences


# --- Endpoints ---


@router.get("/me", response_model=OptionalUserEnvelope)
async def get_me(
    current_user: Annotated[User | None, Depends(get_current_user_optional)],
):
    """Return the signed-in user, or null for anonymous callers."""
    if current_user is None:
        return OptionalUserEnvelope(user=None)
    return OptionalUserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/profile", response_model=UserEnvelope)
async def update_profile(
    data: ProfileUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update name and/or email."""
    if data.email is not None and data.email != current_user.email:
        taken = await db.execute(
            select(User.id).where(User.email == data.email, User.id != current_user.id)
        )
        if taken.scalar_one_or_none() is not None:
            raise Conflict("This email is already in use")
        current_user.email = data.email

    if data.name is not None:
        current_user.name = data.name

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise Conflict("This email is already in use") from None
    await db.refresh(current_user)

    return UserEnvelope(user=UserResponse.model_validate(current_user))


@router.put("/password", response_model=MessageResponse)
async def change_password(
    data: PasswordChange,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Change password after checking the current one."""
    if not verify_password(data.current_password, current_user.password_hash):
        raise InvalidRequest("Current password is incorrect")

    current_user.password_hash = hash_password(data.new_password)
    await db.commit()

    logger.info("User %s changed their password", current_user.id)
    return MessageResponse(message="Password updated successfully")


@router.get("/settings", response_model=PreferencesEnvelope)
async def get_settings(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Get notification preferences."""
    preferences = await get_or_create_preferences(db, current_user.id)
    return PreferencesEnvelope(
        preferences=PreferencesResponse.model_validate(preferences)
    )


@router.put("/settings", response_model=PreferencesEnvelope)
async def update_settings(
    data: PreferencesUpdate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Update notification preferences; only the fields sent change."""
    preferences = await get_or_create_preferences(db, current_user.id)

    for field, value in data.model_dump(exclude_none=True).items():
        setattr(preferences, field, value)

    await db.commit()
    await db.refresh(preferences)

    return PreferencesEnvelope(
        preferences=PreferencesResponse.model_validate(preferences)
    )
