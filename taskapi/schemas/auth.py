"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, ConfigDict, Field

from taskapi.schemas.common import DataResponse


class RegisterRequest(BaseModel):
    """
    Registration body. Fields are optional here so that a missing field produces the
    same "Please provide ..." message as an empty one.
    """

    model_config = ConfigDict(extra="forbid")

    username: str | None = Field(default=None, max_length=255, description="Username")
    email: str | None = Field(default=None, max_length=320, description="Email address")
    password: str | None = Field(default=None, max_length=128, description="Password")
    role: str | None = Field(default=None, max_length=32, description="'user' (default) or 'admin'")


class LoginRequest(BaseModel):
    """Credentials for login."""

    model_config = ConfigDict(extra="forbid")

    email: str | None = Field(default=None, max_length=320, description="Email address")
    password: str | None = Field(default=None, max_length=128, description="Password")


class AuthData(BaseModel):
    """User summary plus a fresh access token (register and login)."""

    id: str
    username: str
    email: str
    role: str
    token: str = Field(..., description="JWT access token; send as Authorization: Bearer <token>")


class CurrentUser(BaseModel):
    """Identity attached to a request by the auth gate (decoded from the token)."""

    id: str
    role: str


AuthResponse = DataResponse[AuthData]
