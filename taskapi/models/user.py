"""ORM model for application users (auth and RBAC)."""

import uuid

from sqlalchemy import Column, DateTime, String, Uuid

from taskapi.models.base import Base, utcnow


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin' or 'user'. password_hash is bcrypt; the plain password is never stored.
    """

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="user")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
