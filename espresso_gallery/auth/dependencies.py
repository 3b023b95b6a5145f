"""FastAPI dependencies for session authentication and role checks."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Annotated

from fastapi import Depends, Request, Response

from espresso_gallery.auth.sessions import (
    SessionTokenError,
    read_session_token,
    session_ttl,
    set_session_cookie,
)
from espresso_gallery.config import settings
from espresso_gallery.db import get_session, repository
from espresso_gallery.errors import Forbidden, SessionExpired, Unauthenticated
from espresso_gallery.types import Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Who is making this request. Built once per request from the session cookie."""

    user_id: int
    role: Role
    email: str
    username: str | None
    session_token: str

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    def can_act_for(self, owner_id: int, *roles: Role) -> bool:
        """True for the resource owner, or for any of ``roles`` (admin by default)."""
        allowed = roles or (Role.ADMIN,)
        return self.user_id == owner_id or self.role in allowed


async def _resolve_auth(request: Request) -> AuthContext:
    """Resolve the session cookie to a live session without extending it.

    Raises:
        Unauthenticated: no cookie, bad signature or inactive account
        SessionExpired: the session row is gone or past its expiry
    """
    cookie = request.cookies.get(settings.session_cookie_name)
    if not cookie:
        raise Unauthenticated("Unauthorized")

    try:
        token = read_session_token(cookie)
    except SessionTokenError as e:
        logger.debug(f"Rejected session cookie: {e}")
        raise Unauthenticated("Unauthorized") from e

    auth: AuthContext | None = None
    async with get_session() as session:
        row = await repository.get_session_by_token(session, token)
        if row is not None and repository.ensure_utc(row.expires_at) <= datetime.now(UTC):
            # Committed on exit so the dead row does not linger
            await repository.delete_session(session, token)
            logger.info(f"Session expired for user {row.user_id}")
            row = None

        if row is not None:
            user = row.user
            if user is None or not user.is_active:
                raise Unauthenticated("Unauthorized")
            auth = AuthContext(
                user_id=user.id,
                role=Role(user.role),
                email=user.email,
                username=user.username,
                session_token=token,
            )

    if auth is None:
        raise SessionExpired("Session expired")
    return auth


async def _slide_session(auth: AuthContext, response: Response) -> None:
    """Push the session expiry forward and re-issue the cookie."""
    async with get_session() as session:
        await repository.touch_session(session, auth.session_token, session_ttl())
    set_session_cookie(response, auth.session_token)


async def get_current_auth(request: Request, response: Response) -> AuthContext:
    auth = await _resolve_auth(request)
    await _slide_session(auth, response)
    return auth


async def get_optional_auth(request: Request, response: Response) -> AuthContext | None:
    """Like ``get_current_auth`` but anonymous (or expired) requests get None."""
    if not request.cookies.get(settings.session_cookie_name):
        return None
    try:
        auth = await _resolve_auth(request)
    except (Unauthenticated, SessionExpired):
        return None
    await _slide_session(auth, response)
    return auth


def require_roles(
    *roles: Role, optional: bool = False
) -> Callable[..., Awaitable[AuthContext | None]]:
    """Dependency factory: any authenticated user when ``roles`` is empty,
    otherwise only users holding one of ``roles``. The session only slides
    once the role check has passed.

    With ``optional`` set, anonymous or expired requests resolve to None
    instead of 401; signed-in users still need one of ``roles``.
    """

    async def dependency(request: Request, response: Response) -> AuthContext | None:
        if optional:
            if not request.cookies.get(settings.session_cookie_name):
                return None
            try:
                auth = await _resolve_auth(request)
            except (Unauthenticated, SessionExpired):
                return None
        else:
            auth = await _resolve_auth(request)

        if roles and auth.role not in roles:
            logger.info(
                f"User {auth.user_id} ({auth.role.value}) denied; needs one of "
                f"{[r.value for r in roles]}"
            )
            raise Forbidden("Forbidden")
        await _slide_session(auth, response)
        return auth

    return dependency


# Type aliases for dependency injection
CurrentAuth = Annotated[AuthContext, Depends(get_current_auth)]
OptionalAuth = Annotated[AuthContext | None, Depends(get_optional_auth)]
AdminAuth = Annotated[AuthContext, Depends(require_roles(Role.ADMIN))]
CreatorAuth = Annotated[AuthContext, Depends(require_roles(Role.CREATOR))]
OptionalAdminAuth = Annotated[
    AuthContext | None, Depends(require_roles(Role.ADMIN, optional=True))
]
