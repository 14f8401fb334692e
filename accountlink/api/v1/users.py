"""User endpoints: lookup and account merge, called by the upstream account-linking flow."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from accountlink.core.config import get_settings
from accountlink.core.database import get_db
from accountlink.schemas.merge import MergeRequest, MergeResult
from accountlink.schemas.user import UserSummary
from accountlink.services.merge import (
    MergeError,
    NotFoundError,
    SelfMergeError,
    TransientStoreError,
    merge_users,
)
from accountlink.services.users import get_user_summary

logger = logging.getLogger(__name__)
router = APIRouter()

# Seconds a client should wait before retrying a merge after a transient failure.
RETRY_AFTER_SEC = 1


def _merge_error_status(error: MergeError) -> int:
    if isinstance(error, SelfMergeError):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(error, TransientStoreError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    # InvalidRoleError: stored data is corrupt, nothing the caller can fix.
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post("/merge", response_model=MergeResult)
def post_merge(
    body: MergeRequest,
    db: Annotated[Session, Depends(get_db)],
) -> MergeResult:
    """
    Merge source_id into target_id: uploads move to the target, the target takes the
    source's account id and username, keeps the higher role, and the source is deleted.

    404 means one of the users does not exist (already merged, or a stale id).
    503 means nothing was changed and the same request can be retried.
    """
    try:
        return merge_users(
            db,
            target_id=body.target_id,
            source_id=body.source_id,
            lock_timeout_ms=get_settings().MERGE_LOCK_TIMEOUT_MS,
        )
    except MergeError as e:
        code = _merge_error_status(e)
        logger.error(
            "Merge failed",
            extra={
                "merge_status": "failure",
                "error_type": type(e).__name__,
                "target_id": body.target_id,
                "source_id": body.source_id,
                "reason": e.message[:500],
            },
        )
        headers = {"Retry-After": str(RETRY_AFTER_SEC)} if e.retryable else None
        raise HTTPException(status_code=code, detail=e.message, headers=headers) from e


@router.get("/{user_id}", response_model=UserSummary)
def get_user(
    user_id: int,
    db: Annotated[Session, Depends(get_db)],
) -> UserSummary:
    """Return a user and their upload count. 404 for unknown or merged-away ids."""
    summary = get_user_summary(db, user_id)
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User {user_id} not found.",
        )
    return summary
