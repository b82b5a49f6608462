"""TagService — tag CRUD and entry/tag linking."""

from __future__ import annotations

from epicme.domain.identities import ENTRIES, TAGS, tag_uri
from epicme.infrastructure.journal import JournalError
from epicme.services.base import BaseService
from epicme.services.result import VALIDATION_ERROR, ServiceResult


class TagService(BaseService):
    """Manage tags and their links to entries."""

    async def create(self, *, name: str, description: str | None = None) -> ServiceResult:
        op = "create_tag"
        if not name.strip():
            return ServiceResult.failure(op, VALIDATION_ERROR, "Tag name must not be empty")
        try:
            tag = await self._journal.create_tag(name=name.strip(), description=description)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"tag": tag.model_dump(), "uri": tag_uri(tag.id)})

    def get(self, tag_id: int) -> ServiceResult:
        op = "get_tag"
        tag = self._journal.get_tag(tag_id)
        if tag is None:
            return self._not_found(op, TAGS, tag_id)
        return ServiceResult(ok=True, op=op, data={"tag": tag.model_dump()})

    def list(self) -> ServiceResult:
        tags = self._journal.list_tags()
        return ServiceResult(
            ok=True,
            op="list_tags",
            data={"tags": [{"id": t.id, "name": t.name} for t in tags], "count": len(tags)},
        )

    async def update(
        self, tag_id: int, *, name: str | None = None, description: str | None = None
    ) -> ServiceResult:
        op = "update_tag"
        if name is not None and not name.strip():
            return ServiceResult.failure(op, VALIDATION_ERROR, "Tag name must not be empty")
        try:
            tag = await self._journal.update_tag(
                tag_id, name=name.strip() if name else None, description=description
            )
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"tag": tag.model_dump()})

    async def delete(self, tag_id: int) -> ServiceResult:
        op = "delete_tag"
        try:
            tag = await self._journal.delete_tag(tag_id)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"tag": tag.model_dump()})

    async def add_to_entry(self, entry_id: int, tag_id: int) -> ServiceResult:
        op = "add_tag_to_entry"
        try:
            link = await self._journal.add_tag_to_entry(entry_id, tag_id)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"entry_tag": link.model_dump()})

    async def remove_from_entry(self, entry_id: int, tag_id: int) -> ServiceResult:
        op = "remove_tag_from_entry"
        try:
            await self._journal.remove_tag_from_entry(entry_id, tag_id)
        except JournalError as exc:
            return self._failure(op, exc)
        return ServiceResult(ok=True, op=op, data={"entry_id": entry_id, "tag_id": tag_id})

    def entry_tags(self, entry_id: int) -> ServiceResult:
        op = "get_entry_tags"
        if self._journal.get_entry(entry_id) is None:
            return self._not_found(op, ENTRIES, entry_id)
        tags = self._journal.get_entry_tags(entry_id)
        return ServiceResult(ok=True, op=op, data={"tags": [t.model_dump() for t in tags]})
