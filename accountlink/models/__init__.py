"""SQLAlchemy ORM models."""

from accountlink.models.base import Base
from accountlink.models.enums import Role
from accountlink.models.upload import Upload
from accountlink.models.user import User

__all__ = ["Base", "Role", "Upload", "User"]
