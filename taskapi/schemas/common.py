"""Response envelope shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class DataResponse(BaseModel, Generic[T]):
    """Successful response: {"success": true, "data": ..., "message": ...}."""

    success: bool = Field(default=True, description="Always true for successful responses")
    data: T
    message: str = Field(..., description="Human-readable outcome")


class ErrorResponse(BaseModel):
    """Failed response: {"success": false, "message": ...}."""

    success: bool = Field(default=False, description="Always false for failed responses")
    message: str = Field(..., description="Human-readable reason for the failure")
