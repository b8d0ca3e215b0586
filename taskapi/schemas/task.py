"""Request/response schemas for task endpoints."""

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from taskapi.schemas.common import DataResponse

if TYPE_CHECKING:
    from taskapi.models import Task

TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 10_000


class TaskCreateRequest(BaseModel):
    """Body for POST /tasks. token is accepted here as an alternative to the Authorization header."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: str | None = Field(default=None, description="'pending' (default) or 'completed'")
    token: str | None = Field(default=None, description="Access token (body transport)")


class TaskUpdateRequest(BaseModel):
    """Body for PUT /tasks/{taskId}; omitted or null fields keep their current value."""

    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    status: str | None = Field(default=None, description="'pending' or 'completed'")
    token: str | None = Field(default=None, description="Access token (body transport)")

    def supplied_fields(self) -> dict[str, str]:
        """Task fields present in the body with a non-null value."""
        return self.model_dump(exclude_none=True, exclude={"token"})


class TaskOwner(BaseModel):
    """Owner projection embedded in every task: never the full user record."""

    id: str
    username: str
    email: str


class TaskOut(BaseModel):
    """Task as returned by the API (camelCase keys)."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    description: str
    status: str
    created_by: TaskOwner = Field(..., alias="createdBy")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_task(cls, task: "Task") -> "TaskOut":
        owner = task.owner
        return cls(
            id=str(task.id),
            title=task.title,
            description=task.description,
            status=task.status,
            created_by=TaskOwner(id=str(owner.id), username=owner.username, email=owner.email),
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class TaskListResponse(BaseModel):
    """One page of tasks plus paging metadata."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    data: list[TaskOut]
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1, le=100)
    total: int = Field(..., ge=0, description="Matching tasks, ignoring pagination")
    total_pages: int = Field(..., ge=1, alias="totalPages")
    message: str


TaskResponse = DataResponse[TaskOut]
