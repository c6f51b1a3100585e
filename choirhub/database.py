from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlmodel import SQLModel, Session, create_engine

from .config import settings

logger = logging.getLogger(__name__)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """
    SQLite ignores FOREIGN KEY clauses unless asked per connection; deleting an
    event relies on them to drop its attendance rows.
    """

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON;")
        cursor.close()


def get_engine(database_url: str | None = None) -> Engine:
    """
    Engine for DATABASE_URL (or the DB_PATH SQLite file). File-based SQLite
    gets its folder created; any SQLite engine gets foreign keys turned on.
    """
    url = make_url(database_url or settings.resolved_database_url)

    if url.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(url, connect_args={"check_same_thread": False})
    enable_sqlite_foreign_keys(engine)
    return engine


# Single, shared engine for the app process
engine: Engine = get_engine()


def register_models() -> None:
    """
    Central place to import ALL models so SQLModel registers them.
    Keep this list current as you add tables.
    """
    from .models.choir import Choir, MembershipType  # noqa: F401
    from .models.voice import VoiceGroup, VoiceType  # noqa: F401
    from .models.member import Member  # noqa: F401
    from .models.event import Event  # noqa: F401
    from .models.attendance import EventAttendance  # noqa: F401
    from .models.info_feed import InfoFeedPost  # noqa: F401
    from .models.chat import Chat, ChatMessage  # noqa: F401


def init_db(create_tables: bool = True, bind: Engine | None = None) -> None:
    """
    Register models, then create missing tables.
    Non-destructive: create_all will not drop or alter existing tables.
    """
    register_models()
    if create_tables:
        SQLModel.metadata.create_all(bind or engine)
        logger.info("database tables ensured")


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency:
        def route(db: Session = Depends(get_db)):
            ...
    Routes own the commit, so a targeting edit and the attendance
    reconciliation that follows it land in one transaction.
    """
    with Session(engine) as session:
        yield session


@contextmanager
def session_scope(bind: Engine | None = None) -> Generator[Session, None, None]:
    """
    Context manager for scripts/jobs that need commit/rollback safety.

    Usage:
        with session_scope() as db:
            reconcile(db, event_id)
    """
    session = Session(bind or engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
