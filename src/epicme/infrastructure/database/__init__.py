"""SQLite database engine and schema via SQLAlchemy Core."""

from epicme.infrastructure.database.engine import create_db_engine, init_database
from epicme.infrastructure.database.schema import entries, entry_tags, metadata, tags

__all__ = [
    "create_db_engine",
    "entries",
    "entry_tags",
    "init_database",
    "metadata",
    "tags",
]
