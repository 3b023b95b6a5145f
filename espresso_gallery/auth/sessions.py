"""Session cookies.

The cookie holds a signed JWT that only references a server-side
``user_sessions`` row; the row decides whether the session is alive and which
role it carries.
"""

import logging
import secrets
from datetime import timedelta
from typing import Any

from fastapi import Response
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from espresso_gallery.config import settings
from espresso_gallery.db import User, UserSession, repository

logger = logging.getLogger(__name__)

SESSION_TOKEN_TYPE = "session"


class SessionTokenError(Exception):
    """Cookie missing, malformed, badly signed or of the wrong type."""

    pass


def session_ttl() -> timedelta:
    return timedelta(hours=settings.session_ttl_hours)


def sign_session_token(token: str) -> str:
    if not settings.session_secret:
        raise SessionTokenError("SESSION_SECRET not configured")
    payload: dict[str, Any] = {"sid": token, "type": SESSION_TOKEN_TYPE}
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def read_session_token(cookie_value: str) -> str:
    """Verify the cookie signature and return the session token it references.

    Raises:
        SessionTokenError: If the cookie cannot be trusted.
    """
    if not settings.session_secret:
        raise SessionTokenError("SESSION_SECRET not configured")
    try:
        payload = jwt.decode(
            cookie_value, settings.session_secret, algorithms=[settings.session_algorithm]
        )
    except JWTError as e:
        raise SessionTokenError(f"Invalid session cookie: {e}") from e

    if payload.get("type") != SESSION_TOKEN_TYPE:
        raise SessionTokenError(f"Expected session token, got {payload.get('type')}")
    sid = payload.get("sid")
    if not isinstance(sid, str) or not sid:
        raise SessionTokenError("Session cookie missing sid")
    return sid


async def start_session(session: AsyncSession, user: User) -> UserSession:
    """Create a fresh session row for ``user``."""
    row = await repository.create_session(session, secrets.token_urlsafe(32), user, session_ttl())
    logger.info(f"Session started for user {user.id} ({user.role})")
    return row


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sign_session_token(token),
        max_age=int(session_ttl().total_seconds()),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=settings.session_cookie_name, path="/")
