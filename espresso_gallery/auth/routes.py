"""Authentication API routes."""

import logging

from fastapi import APIRouter, Request, Response
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from espresso_gallery.auth.dependencies import OptionalAuth
from espresso_gallery.auth.password import (
    DUMMY_HASH,
    hash_password_async,
    needs_rehash,
    verify_password_async,
)
from espresso_gallery.auth.schemas import (
    REDIRECTS,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    SessionResponse,
    UserOut,
)
from espresso_gallery.auth.sessions import (
    SessionTokenError,
    clear_session_cookie,
    read_session_token,
    set_session_cookie,
    start_session,
)
from espresso_gallery.config import settings
from espresso_gallery.db import User, get_session, repository
from espresso_gallery.errors import ConflictError, Unauthenticated, ValidationError
from espresso_gallery.rate_limiter import login_limiter, register_limiter
from espresso_gallery.types import Role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

SELF_SERVICE_ROLES = {Role.CREATOR.value, Role.FOLLOWER.value}


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=user.id,
        email=user.email,
        role=Role(user.role),
        username=user.username,
        display_name=user.display_name,
    )


@router.post("/register", response_model=AuthResponse)
async def register(body: RegisterRequest, request: Request, response: Response) -> AuthResponse:
    """Create a creator or follower account and log it in."""
    register_limiter.check(_client_ip(request))

    if not body.email or not body.password:
        raise ValidationError("Email and password are required")
    if body.role not in SELF_SERVICE_ROLES:
        raise ValidationError("Invalid role. Must be 'creator' or 'follower'", code="INVALID_ROLE")

    role = Role(body.role)
    try:
        async with get_session() as session:
            if await repository.get_user_by_email(session, body.email):
                raise ValidationError("Email already registered", code="EMAIL_TAKEN")
            if body.username and await repository.get_user_by_username(session, body.username):
                raise ValidationError("Username already taken", code="USERNAME_TAKEN")

            user = await repository.create_user(
                session,
                email=body.email,
                password_hash=await hash_password_async(body.password),
                role=role,
                username=body.username,
                display_name=body.display_name,
            )

            # A missing profile can be repaired later; the account still stands
            try:
                async with session.begin_nested():
                    if role is Role.CREATOR:
                        await repository.create_creator_profile(session, user.id, body.display_name)
                    else:
                        await repository.create_follower_profile(session, user.id)
            except SQLAlchemyError as e:
                logger.error(f"Failed to create {role.value} profile for user {user.id}: {e}")

            row = await start_session(session, user)
            user_out = _user_out(user)
    except IntegrityError as e:
        raise ConflictError("Email or username already registered") from e

    logger.info(f"User registered: {user_out.email} (id={user_out.id}, role={role.value})")
    set_session_cookie(response, row.token)
    return AuthResponse(
        message="Registered and logged in successfully",
        user=user_out,
        redirect_to=REDIRECTS[role],
    )


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, request: Request, response: Response) -> AuthResponse:
    """Sign in with email and password."""
    login_limiter.check(_client_ip(request))

    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    async with get_session() as session:
        user = await repository.get_user_by_email(session, body.email)

        # Always verify so unknown emails take as long as wrong passwords
        password_hash = user.password_hash if user else DUMMY_HASH
        password_valid = await verify_password_async(body.password, password_hash)

        if user is None or not password_valid:
            logger.info(f"Invalid credentials for {body.email}")
            raise Unauthenticated("Invalid email or password", code="INVALID_CREDENTIALS")
        if not user.is_active:
            raise Unauthenticated("Account is deactivated", code="ACCOUNT_DISABLED")

        if needs_rehash(user.password_hash):
            new_hash = await hash_password_async(body.password)
            await repository.set_user_password(session, user, new_hash)
            logger.info(f"Upgraded legacy password hash for user {user.id}")

        row = await start_session(session, user)
        user_out = _user_out(user)

    logger.info(f"User logged in: {user_out.email} (id={user_out.id})")
    set_session_cookie(response, row.token)
    return AuthResponse(
        message="Logged in successfully",
        user=user_out,
        redirect_to=REDIRECTS[user_out.role],
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(request: Request, response: Response) -> MessageResponse:
    """Drop the server-side session (if any) and clear the cookie."""
    cookie = request.cookies.get(settings.session_cookie_name)
    if cookie:
        try:
            token = read_session_token(cookie)
        except SessionTokenError:
            token = None
        if token:
            async with get_session() as session:
                await repository.delete_session(session, token)

    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/session", response_model=SessionResponse)
async def get_session_info(auth: OptionalAuth) -> SessionResponse:
    if auth is None:
        return SessionResponse(authenticated=False, user=None)

    async with get_session() as session:
        user = await repository.get_user_by_id(session, auth.user_id)
        user_out = _user_out(user) if user else None

    return SessionResponse(authenticated=user_out is not None, user=user_out)
