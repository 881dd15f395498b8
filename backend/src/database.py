"""Engine and session wiring for the document store.

``create_db_engine`` is shared by the application and the test suite so both
get the same SQLite tweaks; PostgreSQL connections get a small pool.
"""

from typing import Any, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from config import get_settings


def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE RESTRICT unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str, **overrides: Any) -> Engine:
    """Build an engine for ``url``.

    Args:
        url: SQLAlchemy connection string
        **overrides: Extra create_engine() arguments (e.g. poolclass in tests)

    Returns:
        Engine: Configured engine
    """
    options: dict = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        options["pool_size"] = 5
        options["max_overflow"] = 10

    options.update(overrides)
    db_engine = create_engine(url, **options)

    if db_engine.dialect.name == "sqlite":
        event.listen(db_engine, "connect", _enforce_sqlite_foreign_keys)

    return db_engine


engine = create_db_engine(get_settings().DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request.

    The lifecycle service commits or rolls back; this only closes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
