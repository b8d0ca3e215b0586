"""
Application error taxonomy and the FastAPI handlers that turn it into JSON responses.

Every failure leaves the API as {"success": false, "message": "..."} with the status
code of the error class that was raised.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from taskapi.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class TaskApiError(Exception):
    """Base class for errors that map to a single HTTP response."""

    status_code = 500

    def __init__(self, message: str, headers: dict[str, str] | None = None) -> None:
        self.message = message
        self.headers = headers
        super().__init__(message)


class ValidationError(TaskApiError):
    """Missing or malformed input."""

    status_code = 400


class InvalidIdError(ValidationError):
    """An identifier that is not a well-formed id."""


class UnauthenticatedError(TaskApiError):
    """No usable credentials were presented."""

    status_code = 401

    def __init__(self, message: str) -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class TokenExpiredError(UnauthenticatedError):
    """Token signature is valid but its exp claim has passed."""


class ForbiddenError(TaskApiError):
    """Credentials are present but do not grant access."""

    status_code = 403


class TokenInvalidError(ForbiddenError):
    """Token is malformed, has a bad signature, or lacks required claims."""


class NotFoundError(TaskApiError):
    status_code = 404


class ConflictError(TaskApiError):
    status_code = 409


class InternalError(TaskApiError):
    status_code = 500


class DatabaseUnavailableError(Exception):
    """Raised at startup when the database is not configured or not reachable."""


def _error_response(
    status_code: int, message: str, headers: dict[str, str] | None = None
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(message=message).model_dump(),
        headers=headers,
    )


def _format_validation_errors(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "Invalid request: " + "; ".join(parts) if parts else "Invalid request."


async def task_api_error_handler(request: Request, exc: TaskApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return _error_response(exc.status_code, exc.message, exc.headers)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return _error_response(400, _format_validation_errors(exc))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return _error_response(exc.status_code, str(exc.detail), getattr(exc, "headers", None))


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error during %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error. Please try again.")


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error during %s %s", request.method, request.url.path)
    return _error_response(500, "Internal server error. Please try again.")


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers above on the app."""
    app.add_exception_handler(TaskApiError, task_api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
