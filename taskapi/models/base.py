"""SQLAlchemy declarative Base and column defaults shared by the models."""

from datetime import UTC, datetime

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Declarative base for users and tasks."""


def utcnow() -> datetime:
    """Timezone-aware creation/update timestamp, set on the Python side."""
    return datetime.now(UTC)
