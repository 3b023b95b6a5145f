"""Pydantic schemas for authentication endpoints."""

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from espresso_gallery.types import Role


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """Request body for registration. Presence of email/password is checked in the route."""

    email: EmailStr | None = None
    password: str | None = Field(default=None, max_length=128)
    role: str | None = None
    username: str | None = Field(default=None, max_length=50)
    display_name: str | None = Field(default=None, max_length=100)


class LoginRequest(CamelModel):
    email: str | None = None
    password: str | None = None


class UserOut(CamelModel):
    """User as exposed to clients."""

    id: int
    email: str
    role: Role
    username: str | None = None
    display_name: str | None = None


class AuthResponse(CamelModel):
    message: str
    user: UserOut
    redirect_to: str | None = None


class SessionResponse(CamelModel):
    authenticated: bool
    user: UserOut | None = None


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


REDIRECTS = {
    Role.ADMIN: "/admin",
    Role.CREATOR: "/creator/dashboard",
    Role.FOLLOWER: "/gallery",
}
