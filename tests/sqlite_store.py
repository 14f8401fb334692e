"""In-memory SQLite store with foreign keys enforced, shared by the database-backed tests."""

from sqlalchemy import create_engine, event, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from accountlink.models import Base, Upload, User


def make_engine() -> Engine:
    """One shared connection so every session sees the same in-memory database."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(engine)
    return engine


def make_sessionmaker(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def seed_user(
    session: Session,
    user_id: int,
    username: str,
    role: str = "user",
    account_id: int | None = None,
    uploads: int = 0,
) -> None:
    """Add a user with `uploads` uploads; caller commits."""
    session.add(
        User(
            id=user_id,
            account_id=account_id if account_id is not None else user_id * 1000,
            username=username,
            role=role,
        )
    )
    session.flush()
    for i in range(uploads):
        session.add(
            Upload(
                user_id=user_id,
                level_id=user_id * 100 + i,
                image_path=f"thumbnails/{user_id}/{i}.png",
            )
        )
    session.flush()


def snapshot(session_factory: sessionmaker) -> tuple[list[tuple], list[tuple]]:
    """All user and upload rows, ordered by id, read in a fresh session."""
    with session_factory() as s:
        users = [
            tuple(row)
            for row in s.execute(
                select(User.id, User.account_id, User.username, User.role).order_by(User.id)
            )
        ]
        uploads = [
            tuple(row)
            for row in s.execute(
                select(Upload.id, Upload.user_id, Upload.level_id, Upload.image_path).order_by(
                    Upload.id
                )
            )
        ]
    return users, uploads


def upload_owners(session_factory: sessionmaker) -> dict[int, int]:
    """upload id -> owning user id."""
    _, uploads = snapshot(session_factory)
    return {upload_id: owner for upload_id, owner, _level, _path in uploads}
