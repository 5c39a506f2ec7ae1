"""FastAPI dependencies for cookie-based session authentication."""

import logging
from typing import Annotated

from fastapi import Depends, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from schoolcal_api.auth.tokens import TokenError, decode_session_token
from schoolcal_api.config import jwt_settings
from schoolcal_api.db import get_db
from schoolcal_api.exceptions import Unauthenticated
from schoolcal_api.models import User

logger = logging.getLogger(__name__)


async def get_session_token(request: Request) -> str | None:
    """Get the raw session token from the session cookie, if any."""
    return request.cookies.get(jwt_settings.cookie_name) or None


async def resolve_user(db: AsyncSession, token: str | None) -> User | None:
    """Resolve a session token to a live user.

    Missing, malformed, badly signed or expired tokens resolve to None, as do
    tokens whose user no longer exists. Never writes.
    """
    if token is None:
        return None

    try:
        payload = decode_session_token(token)
    except TokenError as e:
        logger.warning("Session token rejected: %s", e)
        return None

    return await db.get(User, payload.sub)


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_session_token)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User | None:
    """Get the current user if authenticated, None otherwise."""
    return await resolve_user(db, token)


async def get_current_user(
    user: Annotated[User | None, Depends(get_current_user_optional)],
) -> User:
    """Get the current authenticated user (required).

    Raises Unauthenticated (401) if there is no valid session.
    """
    if user is None:
        raise Unauthenticated()
    return user


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=jwt_settings.cookie_name,
        value=token,
        httponly=True,
        secure=jwt_settings.cookie_secure,
        samesite=jwt_settings.cookie_samesite,
        max_age=jwt_settings.expiration_minutes * 60,
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=jwt_settings.cookie_name,
        httponly=True,
        secure=jwt_settings.cookie_secure,
        samesite=jwt_settings.cookie_samesite,
        path="/",
    )
