"""SQLAlchemy Core table definitions for the journal database.

Timestamps are ISO-8601 text, written by the store at mutation time.
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
)

metadata = MetaData()

entries = Table(
    "entries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", Text, nullable=False),
    Column("content", Text, nullable=False),
    Column("mood", Text),
    Column("location", Text),
    Column("weather", Text),
    Column("is_private", Integer, nullable=False, default=1, server_default="1"),
    Column("is_favorite", Integer, nullable=False, default=0, server_default="0"),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

tags = Table(
    "tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", Text, nullable=False, unique=True),
    Column("description", Text),
    Column("created_at", Text, nullable=False),
    Column("updated_at", Text, nullable=False),
)

entry_tags = Table(
    "entry_tags",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "entry_id",
        Integer,
        ForeignKey("entries.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column(
        "tag_id",
        Integer,
        ForeignKey("tags.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("created_at", Text, nullable=False),
    UniqueConstraint("entry_id", "tag_id"),
)

# ---------------------------------------------------------------------------
# Indexes for frequently filtered columns
# ---------------------------------------------------------------------------

Index("ix_entries_created_at", entries.c.created_at)
Index("ix_tags_created_at", tags.c.created_at)
Index("ix_entry_tags_entry", entry_tags.c.entry_id)
Index("ix_entry_tags_tag", entry_tags.c.tag_id)
