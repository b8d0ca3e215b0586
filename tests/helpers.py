"""Shared builders for tests: settings, an in-memory database, and a running test client."""

from typing import Any

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from taskapi.core.config import Settings
from taskapi.core.database import Database
from taskapi.main import create_app
from taskapi.models import User
from taskapi.services.users import register_user

TEST_SECRET = "test-secret"


def make_settings(**overrides: Any) -> Settings:
    """Settings for tests: in-memory SQLite, cheap bcrypt, fixed secret, no .env file."""
    values: dict[str, Any] = {
        "APP_ENV": "dev",
        "DATABASE_URL": "sqlite://",
        "BCRYPT_ROUNDS": 4,
        "JWT_SECRET": TEST_SECRET,
        "LOG_LEVEL": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def make_database() -> Database:
    """Fresh in-memory database with all tables created."""
    db = Database("sqlite://")
    db.create_all()
    return db


def make_user(
    session: Session,
    settings: Settings,
    username: str,
    email: str,
    password: str = "secret-pw",
    role: str | None = None,
) -> User:
    return register_user(session, settings, username=username, email=email, password=password, role=role)


def start_client(settings: Settings, database: Database) -> TestClient:
    """Enter a TestClient (runs the lifespan); caller must __exit__ it."""
    client = TestClient(create_app(settings, database))
    client.__enter__()
    return client


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
