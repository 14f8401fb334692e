"""ORM model for users linked to an external identity provider."""

from sqlalchemy import BigInteger, Column, String

from accountlink.models.base import Base, BigIntId
from accountlink.models.enums import Role


class User(Base):
    """
    One authenticated identity, created on first successful external login.

    account_id: id assigned by the external provider (chat platform or legacy game platform)
    role: one of 'user', 'verified', 'moderator', 'admin' (see models.enums.Role)
    """

    __tablename__ = "users"

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    # Not unique: during a merge the target takes the source's account_id before the source is deleted.
    account_id = Column(BigInteger, nullable=False, index=True)
    username = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default=Role.USER.value)
