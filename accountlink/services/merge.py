"""Identity merge: fold a source user into a target user in one transaction.

Runs three statements inside a single transaction, in this order:

1. repoint every upload owned by the source user to the target user
2. copy account_id and username from the source onto the target and raise the
   target's role to the higher of the two roles
3. delete the source user

Row locks are taken users first, then uploads, each in ascending id order, so two
merges over overlapping ids queue behind each other instead of deadlocking. Any
exception inside the transaction rolls all three steps back.
"""

import logging
from typing import Literal

from sqlalchemy import delete, select, text, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.orm import Session

from accountlink.models import Upload, User
from accountlink.models.enums import Role, max_role, parse_role
from accountlink.schemas.merge import MergeResult

logger = logging.getLogger(__name__)

# DBAPI failures worth retrying unchanged: lost connections, deadlocks, lock timeouts and
# serialization failures (psycopg2 reports the last three as OperationalError subclasses).
# Constraint violations are deterministic and propagate as IntegrityError.
TRANSIENT_DB_ERRORS = (OperationalError, InterfaceError)


class MergeError(Exception):
    """Base class for merge failures. Nothing is written when one is raised."""

    retryable = False

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class SelfMergeError(MergeError):
    """Raised when target and source are the same user id."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"Cannot merge user {user_id} into itself.")


class NotFoundError(MergeError):
    """Raised when the target or source user does not exist (or was already merged)."""

    def __init__(self, user_id: int, side: Literal["target", "source"]) -> None:
        self.user_id = user_id
        self.side = side
        super().__init__(f"{side.capitalize()} user {user_id} not found.")


class InvalidRoleError(MergeError):
    """Raised when a stored role token is not one of the known roles."""

    def __init__(self, user_id: int, value: object) -> None:
        self.user_id = user_id
        self.value = value
        super().__init__(f"User {user_id} has unknown role {value!r}.")


class TransientStoreError(MergeError):
    """Raised when the store is unavailable or conflicted. Safe to retry the whole merge."""

    retryable = True


def _is_transient(exc: DBAPIError) -> bool:
    return isinstance(exc, TRANSIENT_DB_ERRORS) or bool(exc.connection_invalidated)


def _set_lock_timeout(session: Session, lock_timeout_ms: int | None) -> None:
    """Bound lock waits for this transaction only (PostgreSQL)."""
    if not lock_timeout_ms:
        return
    if session.get_bind().dialect.name != "postgresql":
        return
    # SET does not accept bind parameters.
    session.execute(text(f"SET LOCAL lock_timeout = {int(lock_timeout_ms)}"))


def _lock_users(session: Session, target_id: int, source_id: int) -> dict[int, Row]:
    rows = session.execute(
        select(User.id, User.account_id, User.username, User.role)
        .where(User.id.in_((target_id, source_id)))
        .order_by(User.id)
        .with_for_update()
    ).all()
    return {row.id: row for row in rows}


def _lock_source_uploads(session: Session, source_id: int) -> list[int]:
    return list(
        session.scalars(
            select(Upload.id)
            .where(Upload.user_id == source_id)
            .order_by(Upload.id)
            .with_for_update()
        )
    )


def _parse_stored_role(row: Row) -> Role:
    try:
        return parse_role(row.role)
    except ValueError as e:
        raise InvalidRoleError(row.id, row.role) from e


def _transfer_uploads(session: Session, target_id: int, source_id: int) -> int:
    result = session.execute(
        update(Upload)
        .where(Upload.user_id == source_id)
        .values(user_id=target_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def _reconcile_target(session: Session, target_id: int, source: Row, role: Role) -> None:
    result = session.execute(
        update(User)
        .where(User.id == target_id)
        .values(account_id=source.account_id, username=source.username, role=role.value)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise TransientStoreError(
            f"Target user {target_id} changed concurrently during merge; retry."
        )


def _delete_source(session: Session, source_id: int) -> None:
    result = session.execute(
        delete(User)
        .where(User.id == source_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        raise TransientStoreError(
            f"Source user {source_id} changed concurrently during merge; retry."
        )


def merge_users(
    session: Session,
    target_id: int,
    source_id: int,
    lock_timeout_ms: int | None = None,
) -> MergeResult:
    """
    Merge source_id into target_id and delete source_id, atomically.

    The session must not have an open transaction; this function begins one and
    commits it, or rolls it back on any exception (including cancellation).
    Raises SelfMergeError, NotFoundError, InvalidRoleError or TransientStoreError.
    Calling it again after a successful merge raises NotFoundError for the source.
    """
    if target_id == source_id:
        raise SelfMergeError(target_id)
    if session.in_transaction():
        raise RuntimeError("merge_users requires a session without an open transaction")

    try:
        with session.begin():
            _set_lock_timeout(session, lock_timeout_ms)

            users = _lock_users(session, target_id, source_id)
            target = users.get(target_id)
            if target is None:
                raise NotFoundError(target_id, "target")
            source = users.get(source_id)
            if source is None:
                raise NotFoundError(source_id, "source")

            target_role = _parse_stored_role(target)
            source_role = _parse_stored_role(source)
            merged_role = max_role(target_role, source_role)

            _lock_source_uploads(session, source_id)
            transferred = _transfer_uploads(session, target_id, source_id)
            _reconcile_target(session, target_id, source, merged_role)
            _delete_source(session, source_id)
    except DBAPIError as e:
        if not _is_transient(e):
            raise
        logger.warning(
            "Merge aborted by store error",
            extra={
                "target_id": target_id,
                "source_id": source_id,
                "error": type(e.orig).__name__ if e.orig is not None else type(e).__name__,
            },
        )
        raise TransientStoreError(
            f"Store unavailable or conflicted while merging user {source_id} into {target_id}; "
            "nothing was changed, safe to retry."
        ) from e
    except TransientStoreError as e:
        logger.warning(
            "Merge aborted: user row changed concurrently",
            extra={"target_id": target_id, "source_id": source_id, "reason": e.message},
        )
        raise
    except InvalidRoleError as e:
        logger.warning(
            "Merge aborted: invalid stored role",
            extra={"target_id": target_id, "source_id": source_id, "user_id": e.user_id},
        )
        raise

    logger.info(
        "Merged users",
        extra={
            "target_id": target_id,
            "source_id": source_id,
            "uploads_transferred": transferred,
            "role": merged_role.value,
            "previous_role": target_role.value,
        },
    )
    return MergeResult(
        target_id=target_id,
        source_id=source_id,
        account_id=source.account_id,
        username=source.username,
        role=merged_role,
        previous_role=target_role,
        uploads_transferred=transferred,
    )
