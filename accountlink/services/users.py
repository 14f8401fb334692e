"""Read-only user lookups."""

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from accountlink.models import Upload, User
from accountlink.schemas.user import UserSummary


def get_user_summary(session: Session, user_id: int) -> UserSummary | None:
    """Return the user with their upload count, or None when the id does not exist (e.g. merged away)."""
    user = session.get(User, user_id)
    if user is None:
        return None
    upload_count = session.scalar(
        select(func.count()).select_from(Upload).where(Upload.user_id == user_id)
    )
    return UserSummary(
        id=user.id,
        account_id=user.account_id,
        username=user.username,
        role=user.role,
        upload_count=upload_count or 0,
    )
