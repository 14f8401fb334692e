"""ORM model for thumbnail uploads owned by a user."""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    func,
)

from accountlink.models.base import Base, BigIntId


class Upload(Base):
    """
    Uploaded thumbnail for a level, owned by exactly one user.

    user_id has no ON DELETE action: a user that still owns uploads cannot be deleted.
    """

    __tablename__ = "uploads"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    user_id = Column(BigInteger, ForeignKey("users.id"), nullable=False, index=True)
    level_id = Column(BigInteger, nullable=False, index=True)
    image_path = Column(String(1024), nullable=False)
    upload_time = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    accepted = Column(Boolean, nullable=False, default=False)
    accepted_time = Column(DateTime(timezone=True), nullable=True)
    # Reviewer id at review time. Not an ownership relation: no FK, and merges leave it as is.
    accepted_by = Column(BigInteger, nullable=True)
    reason = Column(Text, nullable=True)
