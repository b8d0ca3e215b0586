"""ORM model for user-owned tasks."""

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship

from taskapi.models.base import Base, utcnow
from taskapi.models.user import User


class Task(Base):
    """
    A task owned by exactly one user.

    created_by and created_at are set once at creation and never change.
    status: 'pending' or 'completed'.
    """

    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    status = Column(String(32), nullable=False, default="pending", index=True)
    created_by = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    owner = relationship(User, lazy="select")
