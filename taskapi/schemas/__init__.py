"""Pydantic request/response schemas."""

from taskapi.schemas.auth import (
    AuthData,
    AuthResponse,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
)
from taskapi.schemas.common import DataResponse, ErrorResponse
from taskapi.schemas.health import HealthResponse
from taskapi.schemas.task import (
    TaskCreateRequest,
    TaskListResponse,
    TaskOut,
    TaskOwner,
    TaskResponse,
    TaskUpdateRequest,
)

__all__ = [
    "AuthData",
    "AuthResponse",
    "CurrentUser",
    "DataResponse",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "RegisterRequest",
    "TaskCreateRequest",
    "TaskListResponse",
    "TaskOut",
    "TaskOwner",
    "TaskResponse",
    "TaskUpdateRequest",
]
