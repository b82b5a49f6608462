"""ChangeDescriptor — the value published for every journal or media change.

Produced when a mutation commits, handed once to every bus subscriber,
never persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from epicme.domain.identities import ENTRIES, TAGS, VIDEOS, Identity


class ChangeDescriptor(BaseModel):
    """What changed in one mutation.

    Attributes:
        entries: Affected entry ids, in mutation order.
        tags: Affected tag ids, in mutation order.
        videos: Affected media filenames.
        categories: Categories touched, for consumers that do not care
            about individual identities (e.g. "the entries category may
            now be empty").
    """

    model_config = {"frozen": True}

    entries: tuple[int, ...] = ()
    tags: tuple[int, ...] = ()
    videos: tuple[str, ...] = ()
    categories: frozenset[str] = Field(default_factory=frozenset)

    @classmethod
    def for_entries(cls, *entry_ids: int, tags: tuple[int, ...] = ()) -> ChangeDescriptor:
        """Entries changed; *tags* were linked or unlinked but still exist."""
        return cls(entries=entry_ids, tags=tags, categories=frozenset({ENTRIES}))

    @classmethod
    def for_tags(cls, *tag_ids: int, entries: tuple[int, ...] = ()) -> ChangeDescriptor:
        categories = {ENTRIES, TAGS} if entries else {TAGS}
        return cls(entries=entries, tags=tag_ids, categories=frozenset(categories))

    @classmethod
    def for_videos(cls, *filenames: str) -> ChangeDescriptor:
        return cls(videos=filenames, categories=frozenset({VIDEOS}))

    def touches(self, category: str) -> bool:
        return category in self.categories

    def identities(self) -> list[Identity]:
        """Affected identities, de-duplicated, entries then tags then videos."""
        seen: set[Identity] = set()
        result: list[Identity] = []
        candidates = [
            *(Identity(ENTRIES, str(i)) for i in self.entries),
            *(Identity(TAGS, str(i)) for i in self.tags),
            *(Identity(VIDEOS, name) for name in self.videos),
        ]
        for identity in candidates:
            if identity not in seen:
                seen.add(identity)
                result.append(identity)
        return result
