"""Register/login routes and the auth gate dependencies (authenticate, require_admin)."""

import json
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from taskapi.core.config import Settings, get_request_settings
from taskapi.core.database import get_db
from taskapi.core.errors import (
    ForbiddenError,
    InternalError,
    TaskApiError,
    UnauthenticatedError,
)
from taskapi.core.security import create_access_token, verify_access_token
from taskapi.models import User
from taskapi.schemas.auth import (
    AuthData,
    AuthResponse,
    CurrentUser,
    LoginRequest,
    RegisterRequest,
)
from taskapi.services.users import authenticate_user, register_user

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)

TOKEN_COOKIE_NAME = "token"
TOKEN_BODY_FIELD = "token"


def _auth_data(user: User, settings: Settings) -> AuthData:
    return AuthData(
        id=str(user.id),
        username=user.username,
        email=user.email,
        role=user.role,
        token=create_access_token(str(user.id), user.role, settings),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_request_settings)],
) -> AuthResponse:
    """Create an account and return it with an access token (registration logs the user in)."""
    user = register_user(
        db,
        settings,
        username=body.username,
        email=body.email,
        password=body.password,
        role=body.role,
    )
    return AuthResponse(data=_auth_data(user, settings), message="User registered successfully.")


@router.post("/login", response_model=AuthResponse)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_request_settings)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns the user and a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    user = authenticate_user(db, body.email, body.password)
    return AuthResponse(data=_auth_data(user, settings), message="Login successful.")


async def _token_from_body(request: Request) -> str | None:
    body = await request.body()
    if not body:
        return None
    try:
        payload = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    if isinstance(payload, dict):
        token = payload.get(TOKEN_BODY_FIELD)
        if isinstance(token, str) and token:
            return token
    return None


async def extract_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    """Token from the Bearer header, then the token cookie, then the JSON body's token field."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    cookie = request.cookies.get(TOKEN_COOKIE_NAME)
    if cookie:
        return cookie
    return await _token_from_body(request)


async def authenticate(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    settings: Annotated[Settings, Depends(get_request_settings)],
) -> CurrentUser:
    """
    Dependency: verify the caller's token and attach its identity to request.state.user.

    401 when no token is present or it has expired, 403 when it is invalid.
    The identity is taken from the token; the users table is not consulted.
    """
    token = await extract_token(request, credentials)
    if not token:
        raise UnauthenticatedError("No token provided, authorization denied. Please log in.")
    try:
        claims = verify_access_token(token, settings)
    except TaskApiError as e:
        logger.info("Rejected token on %s %s: %s", request.method, request.url.path, e.message)
        raise
    except Exception as e:
        logger.exception("Token verification failed unexpectedly")
        raise InternalError("Authentication error. Please try again.") from e

    current_user = CurrentUser(id=claims.id, role=claims.role)
    request.state.user = current_user
    return current_user


def require_admin(
    request: Request,
    _user: Annotated[CurrentUser, Depends(authenticate)],
) -> CurrentUser:
    """Dependency: require an attached identity with role 'admin'. Raises 403 otherwise."""
    current_user: CurrentUser | None = getattr(request.state, "user", None)
    if current_user is None or current_user.role != "admin":
        raise ForbiddenError("Access denied. Admins only.")
    return current_user
