"""Authentication module for the school calendar API.

Sessions are signed JWTs stored in an httpOnly cookie. Routes depend on
get_current_user (401 when anonymous) or get_current_user_optional.
"""

from schoolcal_api.auth.dependencies import (
    clear_session_cookie,
    get_current_user,
    get_current_user_optional,
    get_session_token,
    resolve_user,
    set_session_cookie,
)
from schoolcal_api.auth.passwords import hash_password, verify_password
from schoolcal_api.auth.tokens import (
    SessionTokenManager,
    SessionTokenPayload,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    create_session_token,
    decode_session_token,
    get_token_manager,
)

__all__ = [
    # Dependencies
    "clear_session_cookie",
    "get_current_user",
    "get_current_user_optional",
    "get_session_token",
    "resolve_user",
    "set_session_cookie",
    # Passwords
    "hash_password",
    "verify_password",
    # Tokens
    "SessionTokenManager",
    "SessionTokenPayload",
    "TokenError",
    "TokenExpiredError",
    "TokenInvalidError",
    "create_session_token",
    "decode_session_token",
    "get_token_manager",
]
