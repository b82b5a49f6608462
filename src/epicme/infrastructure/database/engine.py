"""Database engine setup for SQLite with WAL mode.

SQLAlchemy Core (not ORM): the journal is a handful of flat tables and
every mutation is a short explicit transaction.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from epicme.infrastructure.database.schema import metadata


def create_db_engine(db_path: Path | str) -> Engine:
    """Create a SQLite engine with WAL mode and foreign keys enabled.

    ``":memory:"`` yields an in-memory database (tests).
    """
    url = "sqlite://" if str(db_path) == ":memory:" else f"sqlite:///{db_path}"
    engine = create_engine(url, echo=False)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn: Any, _: Any) -> None:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def init_database(db_path: Path) -> Engine:
    """Create the journal tables at *db_path* and return the engine.

    Idempotent — safe to call on an existing database.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_db_engine(db_path)
    metadata.create_all(engine)
    return engine
