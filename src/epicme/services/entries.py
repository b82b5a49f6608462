"""EntryService — journal entry CRUD over the :class:`Journal` store."""

from __future__ import annotations

from typing import Any

from epicme.domain.identities import ENTRIES, entry_uri
from epicme.infrastructure.journal import JournalError
from epicme.services.base import BaseService
from epicme.services.result import VALIDATION_ERROR, ServiceResult


class EntryService(BaseService):
    """Create, read, update and delete journal entries."""

    async def create(
        self,
        *,
        title: str,
        content: str,
        tag_ids: list[int] | None = None,
        **fields: Any,
    ) -> ServiceResult:
        op = "create_entry"
        if not title.strip():
            return ServiceResult.failure(op, VALIDATION_ERROR, "Entry title must not be empty")
        try:
            entry = await self._journal.create_entry(
                title=title, content=content, tag_ids=tag_ids or (), **fields
            )
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(
            ok=True,
            op=op,
            data={"entry": entry.model_dump(), "uri": entry_uri(entry.id)},
        )

    def get(self, entry_id: int) -> ServiceResult:
        op = "get_entry"
        entry = self._journal.get_entry(entry_id)
        if entry is None:
            return self._not_found(op, ENTRIES, entry_id)
        return ServiceResult(ok=True, op=op, data={"entry": entry.model_dump()})

    def list(self, *, tag_id: int | None = None) -> ServiceResult:
        entries = self._journal.list_entries(tag_id=tag_id)
        return ServiceResult(
            ok=True,
            op="list_entries",
            data={
                "entries": [
                    {"id": e.id, "title": e.title, "tag_count": len(e.tags)} for e in entries
                ],
                "count": len(entries),
            },
        )

    async def update(self, entry_id: int, **fields: Any) -> ServiceResult:
        op = "update_entry"
        if fields.get("title") is not None and not str(fields["title"]).strip():
            return ServiceResult.failure(op, VALIDATION_ERROR, "Entry title must not be empty")
        try:
            entry = await self._journal.update_entry(entry_id, **fields)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"entry": entry.model_dump()})

    async def delete(self, entry_id: int) -> ServiceResult:
        op = "delete_entry"
        try:
            entry = await self._journal.delete_entry(entry_id)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"entry": entry.model_dump()})
