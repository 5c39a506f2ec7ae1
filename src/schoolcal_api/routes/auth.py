"""Authentication routes: register, login, logout and password reset."""

import logging
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import EmailStr, Field, field_validator
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth import (
    clear_session_cookie,
    create_session_token,
    hash_password,
    set_session_cookie,
    verify_password,
)
from schoolcal_api.config import settings
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import (
    AlreadyExists,
    Conflict,
    InvalidRequest,
    NotFound,
    Unauthenticated,
)
from schoolcal_api.models import PasswordReset, User
from schoolcal_api.models.base import as_utc, utc_now
from schoolcal_api.schemas import (
    ApiModel,
    AuthResponse,
    MessageResponse,
    UserResponse,
    check_password_bytes,
)
from schoolcal_api.services.invites import surface_pending_invites

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

PASSWORD_MAX_LENGTH = 72


# --- Schemas ---


class RegisterRequest(ApiModel):
    name: str = Field(min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return check_password_bytes(v)


class LoginRequest(ApiModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)


class ForgotPasswordRequest(ApiModel):
    email: EmailStr


class ForgotPasswordResponse(ApiModel):
    message: str
    # Only exposed in debug mode, the reset id is a bearer secret
    reset_id: str | None = None


class ResetPasswordRequest(ApiModel):
    password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)
    confirm_password: str = Field(min_length=8, max_length=PASSWORD_MAX_LENGTH)

    @field_validator("password", "confirm_password")
    @classmethod
    def validate_password_bytes(cls, v: str) -> str:
        return check_password_bytes(v)


# --- Endpoints ---


@router.post(
    "/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    data: RegisterRequest,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create an account and start a session.

    Pending email invites for the address show up as notifications.
    """
    existing = await db.execute(select(User.id).where(User.email == data.email))
    if existing.scalar_one_or_none() is not None:
        raise AlreadyExists("User with this email already exists")

    user = User(
        name=data.name,
        email=data.email,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    try:
        await db.flush()
        await surface_pending_invites(db, user)
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise AlreadyExists("User with this email already exists") from None
    await db.refresh(user)

    set_session_cookie(response, create_session_token(user.id, user.email))
    logger.info("Registered user %s", user.id)
    return AuthResponse(
        message="User registered successfully",
        user=UserResponse.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    data: LoginRequest,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Check credentials and set the session cookie."""
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise Unauthenticated("Invalid email or password")

    set_session_cookie(response, create_session_token(user.id, user.email))
    return AuthResponse(
        message="Login successful", user=UserResponse.model_validate(user)
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the session cookie."""
    clear_session_cookie(response)
    return MessageResponse(message="Logged out")


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Open a password reset request for an account."""
    result = await db.execute(select(User).where(User.email == data.email))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User with this email does not exist")

    reset = PasswordReset(
        user_id=user.id,
        valid_until=utc_now() + timedelta(minutes=settings.password_reset_ttl_minutes),
    )
    db.add(reset)
    await db.commit()
    await db.refresh(reset)

    logger.info("Password reset %s requested for user %s", reset.id, user.id)
    return ForgotPasswordResponse(
        message="Password reset request created",
        reset_id=reset.id if settings.debug else None,
    )


@router.post("/forgot-password/{reset_id}", response_model=MessageResponse)
async def reset_password(
    reset_id: str,
    data: ResetPasswordRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Set a new password through a reset request (single use)."""
    if data.password != data.confirm_password:
        raise InvalidRequest("Passwords do not match")

    reset = await db.get(PasswordReset, reset_id)
    if reset is None:
        raise NotFound("Invalid password reset request")
    if reset.used:
        raise Conflict("This password reset link has already been used")
    if as_utc(reset.valid_until) < utc_now():
        raise Conflict("This password reset link has expired")

    user = await db.get(User, reset.user_id)
    if user is None:
        raise NotFound("Invalid password reset request")

    reset.used = True
    user.password_hash = hash_password(data.password)
    await db.commit()

    logger.info("Password reset %s used by user %s", reset.id, user.id)
    return MessageResponse(message="Password has been reset successfully")
