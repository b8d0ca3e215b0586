"""Core app configuration, database handle, errors and security."""

from taskapi.core.config import Settings, get_settings
from taskapi.core.database import Database, get_db

__all__ = ["Database", "Settings", "get_settings", "get_db"]
