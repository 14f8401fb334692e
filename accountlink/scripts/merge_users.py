"""
Merge one user into another from the command line. Run from project root:
  python -m accountlink.scripts.merge_users TARGET_ID SOURCE_ID [--retries N]
Example (keep user 12, absorb and delete user 7):
  python -m accountlink.scripts.merge_users 12 7

Exit codes: 0 merged, 1 rejected (same id, unknown id, invalid stored role),
2 store still unavailable after all retries.
"""
import argparse
import logging
import sys
import time

from accountlink.core.config import get_settings
from accountlink.core.database import SessionLocal
from accountlink.services.merge import (
    MergeError,
    NotFoundError,
    TransientStoreError,
    merge_users,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_TRANSIENT = 2


def run_merge(
    target_id: int,
    source_id: int,
    attempts: int,
    backoff_sec: float,
    lock_timeout_ms: int | None = None,
) -> int:
    """Run the merge, retrying only transient store failures. Returns an exit code."""
    for attempt in range(1, attempts + 1):
        db = SessionLocal()
        try:
            result = merge_users(db, target_id, source_id, lock_timeout_ms=lock_timeout_ms)
        except TransientStoreError as e:
            logger.warning("Attempt %s/%s failed: %s", attempt, attempts, e.message)
            if attempt < attempts:
                time.sleep(backoff_sec * attempt)
            continue
        except NotFoundError as e:
            print(f"{e.message} Already merged or unknown id; nothing changed.", file=sys.stderr)
            return EXIT_REJECTED
        except MergeError as e:
            print(e.message, file=sys.stderr)
            return EXIT_REJECTED
        finally:
            db.close()
        print(
            f"Merged user {result.source_id} into {result.target_id}: "
            f"username '{result.username}', role '{result.role.value}', "
            f"{result.uploads_transferred} upload(s) transferred."
        )
        return EXIT_OK
    print(f"Merge failed after {attempts} attempt(s); nothing was changed.", file=sys.stderr)
    return EXIT_TRANSIENT


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Merge SOURCE_ID into TARGET_ID and delete SOURCE_ID."
    )
    parser.add_argument("target_id", type=int, help="User id that survives")
    parser.add_argument("source_id", type=int, help="User id that is absorbed and deleted")
    parser.add_argument(
        "--retries",
        type=int,
        default=settings.MERGE_RETRY_ATTEMPTS,
        help="Attempts on transient store errors (default: MERGE_RETRY_ATTEMPTS)",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    if args.retries < 1:
        print("--retries must be at least 1.", file=sys.stderr)
        return EXIT_REJECTED

    return run_merge(
        args.target_id,
        args.source_id,
        attempts=args.retries,
        backoff_sec=settings.MERGE_RETRY_BACKOFF_SEC,
        lock_timeout_ms=settings.MERGE_LOCK_TIMEOUT_MS,
    )


if __name__ == "__main__":
    sys.exit(main())
