"""Core app configuration and database."""

from accountlink.core.config import get_settings, settings
from accountlink.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
