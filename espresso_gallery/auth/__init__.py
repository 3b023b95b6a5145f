"""Authentication module for Espresso Gallery."""

from espresso_gallery.auth.dependencies import (
    AdminAuth,
    AuthContext,
    CreatorAuth,
    CurrentAuth,
    OptionalAuth,
    OptionalAdminAuth,
    get_current_auth,
    get_optional_auth,
    require_roles,
)
from espresso_gallery.auth.password import (
    hash_password,
    hash_password_async,
    verify_password,
    verify_password_async,
)
from espresso_gallery.auth.routes import router as auth_router

__all__ = [
    "AdminAuth",
    "AuthContext",
    "CreatorAuth",
    "CurrentAuth",
    "OptionalAuth",
    "OptionalAdminAuth",
    "auth_router",
    "get_current_auth",
    "get_optional_auth",
    "hash_password",
    "hash_password_async",
    "require_roles",
    "verify_password",
    "verify_password_async",
]
