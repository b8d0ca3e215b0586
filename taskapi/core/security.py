"""Password hashing and JWT creation/verification for authentication."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any, NamedTuple

import bcrypt
import jwt

from taskapi.core.errors import TokenExpiredError, TokenInvalidError

if TYPE_CHECKING:
    from taskapi.core.config import Settings

# bcrypt only looks at the first 72 bytes of a password.
BCRYPT_MAX_BYTES = 72


class TokenClaims(NamedTuple):
    """Identity carried by a verified access token."""

    id: str
    role: str


def hash_password(plain_password: str, rounds: int = 12) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    user_id: str,
    role: str,
    settings: "Settings",
    now: datetime | None = None,
) -> str:
    """Create a JWT access token with id, role, iat and exp (JWT_EXPIRE_MINUTES after iat)."""
    issued_at = now or datetime.now(UTC)
    payload: dict[str, Any] = {
        "id": str(user_id),
        "role": role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def verify_access_token(token: str, settings: "Settings") -> TokenClaims:
    """
    Decode and validate a JWT; return its id and role.

    Raises TokenExpiredError when the signature is good but exp has passed, and
    TokenInvalidError for anything malformed, tampered with, or missing claims.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET.get_secret_value(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"require": ["exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as e:
        raise TokenExpiredError("Token has expired. Please log in again.") from e
    except jwt.InvalidTokenError as e:
        raise TokenInvalidError("Invalid token. Authorization denied.") from e

    user_id = payload.get("id")
    role = payload.get("role")
    if not isinstance(user_id, str) or not user_id or not isinstance(role, str):
        raise TokenInvalidError("Invalid token. Authorization denied.")
    return TokenClaims(id=user_id, role=role)
