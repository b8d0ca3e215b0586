"""Credential store: user registration, lookup, and password verification."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskapi.core.errors import ConflictError, UnauthenticatedError, ValidationError
from taskapi.core.security import hash_password, verify_password
from taskapi.models import User

if TYPE_CHECKING:
    from taskapi.core.config import Settings

logger = logging.getLogger(__name__)

USER_ROLES: frozenset[str] = frozenset({"user", "admin"})
DEFAULT_ROLE = "user"


def register_user(
    session: Session,
    settings: "Settings",
    username: str | None,
    email: str | None,
    password: str | None,
    role: str | None = None,
) -> User:
    """
    Create a user with a bcrypt-hashed password.

    Raises ValidationError for a missing field or unknown role, and ConflictError when the
    username or email is already taken (exact match).
    """
    if not username or not email or not password:
        raise ValidationError("Please provide username, email, and password.")

    normalized_role = role.lower() if role else DEFAULT_ROLE
    if normalized_role not in USER_ROLES:
        raise ValidationError("Role must be either 'user' or 'admin'.")

    existing = (
        session.query(User)
        .filter(or_(User.email == email, User.username == username))
        .first()
    )
    if existing is not None:
        raise ConflictError("User already exists with this email or username.")

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password, rounds=settings.BCRYPT_ROUNDS),
        role=normalized_role,
    )
    session.add(user)
    try:
        session.commit()
    except IntegrityError as e:
        # Lost a race with a concurrent registration on the unique indexes.
        session.rollback()
        raise ConflictError("User already exists with this email or username.") from e

    logger.info("Registered user id=%s role=%s", user.id, user.role)
    return user


def find_by_email(session: Session, email: str) -> User | None:
    return session.query(User).filter(User.email == email).first()


def verify_user_password(user: User, candidate: str) -> bool:
    """Compare a candidate password against the user's stored hash."""
    return verify_password(candidate, user.password_hash)


def authenticate_user(session: Session, email: str | None, password: str | None) -> User:
    """
    Return the user for valid credentials.

    Unknown email and wrong password raise the same UnauthenticatedError.
    """
    if not email or not password:
        raise ValidationError("Please provide email and password.")

    user = find_by_email(session, email)
    if user is None or not verify_user_password(user, password):
        logger.info("Failed login attempt")
        raise UnauthenticatedError("Invalid email or password.")
    return user
