"""Journal — entry and tag store over SQLite with publish-on-mutation.

Reads are plain synchronous queries. Mutations are coroutines: each one
runs in a single transaction and, only after the commit succeeded,
publishes exactly one :class:`ChangeDescriptor` on the journal bus.
A mutation that raises publishes nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from epicme.domain.changes import ChangeDescriptor
from epicme.domain.records import Entry, EntryTag, Tag, TagRef
from epicme.infrastructure.database.schema import entries, entry_tags, tags

if TYPE_CHECKING:
    from epicme.reactive.bus import ChangeBus

logger = logging.getLogger(__name__)

ENTRY_FIELDS = frozenset(
    {"title", "content", "mood", "location", "weather", "is_private", "is_favorite"}
)
TAG_FIELDS = frozenset({"name", "description"})


class JournalError(Exception):
    """Base class for store failures the service layer maps to error codes."""


class RecordNotFoundError(JournalError):
    def __init__(self, category: str, identifier: int | str) -> None:
        self.category = category
        self.identifier = identifier
        super().__init__(f"{category}/{identifier} not found")


class DuplicateRecordError(JournalError):
    def __init__(self, category: str, key: str) -> None:
        self.category = category
        self.key = key
        super().__init__(f"{category} {key} already exists")


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


class Journal:
    """Repository for entries, tags and their links.

    Args:
        engine: SQLAlchemy engine with the journal schema created.
        bus: Journal change bus; ``None`` disables publishing (CLI reads).
        clock: Source of ISO timestamps for ``created_at``/``updated_at``.
    """

    def __init__(
        self,
        engine: Engine,
        bus: ChangeBus[ChangeDescriptor] | None = None,
        *,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._engine = engine
        self._bus = bus
        self._clock = clock

    @property
    def engine(self) -> Engine:
        return self._engine

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        """Commit on success, roll back on exception."""
        with self._engine.begin() as conn:
            yield conn

    async def _publish(self, descriptor: ChangeDescriptor) -> None:
        if self._bus is not None:
            await self._bus.publish(descriptor)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count_entries(self) -> int:
        with self._engine.connect() as conn:
            return int(conn.execute(select(func.count(entries.c.id))).scalar_one() or 0)

    def count_tags(self) -> int:
        with self._engine.connect() as conn:
            return int(conn.execute(select(func.count(tags.c.id))).scalar_one() or 0)

    def list_entries(self, *, year: int | None = None, tag_id: int | None = None) -> list[Entry]:
        """All entries in id order, optionally filtered by creation year or tag."""
        stmt = select(entries).order_by(entries.c.id)
        if year is not None:
            stmt = stmt.where(func.substr(entries.c.created_at, 1, 4) == f"{year:04d}")
        if tag_id is not None:
            stmt = stmt.where(
                entries.c.id.in_(select(entry_tags.c.entry_id).where(entry_tags.c.tag_id == tag_id))
            )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
            refs = self._tag_refs(conn, [int(row["id"]) for row in rows])
        return [_entry_from_row(row, refs.get(int(row["id"]), ())) for row in rows]

    def get_entry(self, entry_id: int) -> Entry | None:
        with self._engine.connect() as conn:
            return self._get_entry(conn, entry_id)

    def list_tags(self, *, year: int | None = None) -> list[Tag]:
        stmt = select(tags).order_by(tags.c.id)
        if year is not None:
            stmt = stmt.where(func.substr(tags.c.created_at, 1, 4) == f"{year:04d}")
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_tag_from_row(row) for row in rows]

    def get_tag(self, tag_id: int) -> Tag | None:
        with self._engine.connect() as conn:
            return self._get_tag(conn, tag_id)

    def get_entry_tags(self, entry_id: int) -> list[Tag]:
        stmt = (
            select(tags)
            .join(entry_tags, entry_tags.c.tag_id == tags.c.id)
            .where(entry_tags.c.entry_id == entry_id)
            .order_by(tags.c.id)
        )
        with self._engine.connect() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [_tag_from_row(row) for row in rows]

    # ------------------------------------------------------------------
    # Entry mutations
    # ------------------------------------------------------------------

    async def create_entry(
        self,
        *,
        title: str,
        content: str,
        tag_ids: Iterable[int] = (),
        **fields: Any,
    ) -> Entry:
        """Insert an entry, optionally linking existing tags in the same commit."""
        _check_fields(fields, ENTRY_FIELDS)
        linked = tuple(dict.fromkeys(tag_ids))
        now = self._clock()
        with self.transaction() as conn:
            for tag_id in linked:
                self._require_tag(conn, tag_id)
            result = conn.execute(
                insert(entries).values(
                    title=title,
                    content=content,
                    created_at=now,
                    updated_at=now,
                    **_entry_values(fields),
                )
            )
            entry_id = int(result.inserted_primary_key[0])
            for tag_id in linked:
                conn.execute(
                    insert(entry_tags).values(entry_id=entry_id, tag_id=tag_id, created_at=now)
                )
            entry = self._require_entry(conn, entry_id)
        logger.debug("Created entry %d", entry_id)
        await self._publish(ChangeDescriptor.for_entries(entry_id, tags=linked))
        return entry

    async def update_entry(self, entry_id: int, **fields: Any) -> Entry:
        """Update the given columns; ``None`` values are left unchanged."""
        _check_fields(fields, ENTRY_FIELDS)
        values = {k: v for k, v in _entry_values(fields).items() if v is not None}
        with self.transaction() as conn:
            self._require_entry(conn, entry_id)
            conn.execute(
                update(entries)
                .where(entries.c.id == entry_id)
                .values(updated_at=self._clock(), **values)
            )
            entry = self._require_entry(conn, entry_id)
        await self._publish(ChangeDescriptor.for_entries(entry_id))
        return entry

    async def delete_entry(self, entry_id: int) -> Entry:
        """Delete an entry and its tag links. Returns the deleted entry."""
        with self.transaction() as conn:
            entry = self._require_entry(conn, entry_id)
            conn.execute(delete(entry_tags).where(entry_tags.c.entry_id == entry_id))
            conn.execute(delete(entries).where(entries.c.id == entry_id))
        logger.debug("Deleted entry %d", entry_id)
        await self._publish(ChangeDescriptor.for_entries(entry_id))
        return entry

    # ------------------------------------------------------------------
    # Tag mutations
    # ------------------------------------------------------------------

    async def create_tag(self, *, name: str, description: str | None = None) -> Tag:
        now = self._clock()
        try:
            with self.transaction() as conn:
                result = conn.execute(
                    insert(tags).values(
                        name=name,
                        description=description,
                        created_at=now,
                        updated_at=now,
                    )
                )
                tag_id = int(result.inserted_primary_key[0])
                tag = self._require_tag(conn, tag_id)
        except IntegrityError as exc:
            raise DuplicateRecordError("tag", name) from exc
        logger.debug("Created tag %d (%s)", tag_id, name)
        await self._publish(ChangeDescriptor.for_tags(tag_id))
        return tag

    async def update_tag(self, tag_id: int, **fields: Any) -> Tag:
        _check_fields(fields, TAG_FIELDS)
        values = {k: v for k, v in fields.items() if v is not None}
        try:
            with self.transaction() as conn:
                self._require_tag(conn, tag_id)
                conn.execute(
                    update(tags).where(tags.c.id == tag_id).values(updated_at=self._clock(), **values)
                )
                tag = self._require_tag(conn, tag_id)
        except IntegrityError as exc:
            raise DuplicateRecordError("tag", str(values.get("name"))) from exc
        await self._publish(ChangeDescriptor.for_tags(tag_id))
        return tag

    async def delete_tag(self, tag_id: int) -> Tag:
        """Delete a tag. Entries that carried it are reported as affected."""
        with self.transaction() as conn:
            tag = self._require_tag(conn, tag_id)
            affected = tuple(
                int(row)
                for row in conn.execute(
                    select(entry_tags.c.entry_id)
                    .where(entry_tags.c.tag_id == tag_id)
                    .order_by(entry_tags.c.entry_id)
                ).scalars()
            )
            conn.execute(delete(entry_tags).where(entry_tags.c.tag_id == tag_id))
            conn.execute(delete(tags).where(tags.c.id == tag_id))
        logger.debug("Deleted tag %d (affected entries: %s)", tag_id, affected)
        await self._publish(ChangeDescriptor.for_tags(tag_id, entries=affected))
        return tag

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    async def add_tag_to_entry(self, entry_id: int, tag_id: int) -> EntryTag:
        try:
            with self.transaction() as conn:
                self._require_entry(conn, entry_id)
                self._require_tag(conn, tag_id)
                result = conn.execute(
                    insert(entry_tags).values(
                        entry_id=entry_id, tag_id=tag_id, created_at=self._clock()
                    )
                )
                link_id = int(result.inserted_primary_key[0])
        except IntegrityError as exc:
            raise DuplicateRecordError("entry tag", f"{entry_id}/{tag_id}") from exc
        await self._publish(ChangeDescriptor.for_entries(entry_id, tags=(tag_id,)))
        return EntryTag(id=link_id, entry_id=entry_id, tag_id=tag_id)

    async def remove_tag_from_entry(self, entry_id: int, tag_id: int) -> None:
        with self.transaction() as conn:
            result = conn.execute(
                delete(entry_tags).where(
                    entry_tags.c.entry_id == entry_id,
                    entry_tags.c.tag_id == tag_id,
                )
            )
            if result.rowcount == 0:
                raise RecordNotFoundError("entry tag", f"{entry_id}/{tag_id}")
        await self._publish(ChangeDescriptor.for_entries(entry_id, tags=(tag_id,)))

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get_entry(self, conn: Connection, entry_id: int) -> Entry | None:
        row = conn.execute(select(entries).where(entries.c.id == entry_id)).mappings().first()
        if row is None:
            return None
        refs = self._tag_refs(conn, [entry_id])
        return _entry_from_row(row, refs.get(entry_id, ()))

    def _get_tag(self, conn: Connection, tag_id: int) -> Tag | None:
        row = conn.execute(select(tags).where(tags.c.id == tag_id)).mappings().first()
        return _tag_from_row(row) if row is not None else None

    def _require_entry(self, conn: Connection, entry_id: int) -> Entry:
        entry = self._get_entry(conn, entry_id)
        if entry is None:
            raise RecordNotFoundError("entries", entry_id)
        return entry

    def _require_tag(self, conn: Connection, tag_id: int) -> Tag:
        tag = self._get_tag(conn, tag_id)
        if tag is None:
            raise RecordNotFoundError("tags", tag_id)
        return tag

    def _tag_refs(self, conn: Connection, entry_ids: list[int]) -> dict[int, tuple[TagRef, ...]]:
        if not entry_ids:
            return {}
        stmt = (
            select(entry_tags.c.entry_id, tags.c.id, tags.c.name)
            .join(tags, tags.c.id == entry_tags.c.tag_id)
            .where(entry_tags.c.entry_id.in_(entry_ids))
            .order_by(entry_tags.c.entry_id, tags.c.id)
        )
        refs: dict[int, list[TagRef]] = {}
        for row in conn.execute(stmt).mappings():
            refs.setdefault(int(row["entry_id"]), []).append(
                TagRef(id=int(row["id"]), name=row["name"])
            )
        return {entry_id: tuple(items) for entry_id, items in refs.items()}


def _check_fields(fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        msg = f"Unknown field(s): {', '.join(sorted(unknown))}"
        raise TypeError(msg)


def _entry_values(fields: Mapping[str, Any]) -> dict[str, Any]:
    values = dict(fields)
    for flag in ("is_private", "is_favorite"):
        if values.get(flag) is not None:
            values[flag] = int(bool(values[flag]))
    return values


def _entry_from_row(row: Mapping[str, Any], refs: tuple[TagRef, ...]) -> Entry:
    return Entry(
        id=int(row["id"]),
        title=row["title"],
        content=row["content"],
        mood=row["mood"],
        location=row["location"],
        weather=row["weather"],
        is_private=bool(row["is_private"]),
        is_favorite=bool(row["is_favorite"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        tags=refs,
    )


def _tag_from_row(row: Mapping[str, Any]) -> Tag:
    return Tag(
        id=int(row["id"]),
        name=row["name"],
        description=row["description"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
