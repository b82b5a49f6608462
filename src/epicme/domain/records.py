"""Journal record models returned by the store.

Frozen pydantic models so they serialize straight into MCP structured
content and can be handed to the scene builder without copying.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Tag(BaseModel):
    model_config = {"frozen": True}

    id: int
    name: str
    description: str | None = None
    created_at: str
    updated_at: str

    @property
    def year(self) -> int:
        return datetime.fromisoformat(self.created_at).year


class TagRef(BaseModel):
    """Tag reference embedded in an entry."""

    model_config = {"frozen": True}

    id: int
    name: str


class Entry(BaseModel):
    model_config = {"frozen": True}

    id: int
    title: str
    content: str
    mood: str | None = None
    location: str | None = None
    weather: str | None = None
    is_private: bool = True
    is_favorite: bool = False
    created_at: str
    updated_at: str
    tags: tuple[TagRef, ...] = Field(default_factory=tuple)

    @property
    def year(self) -> int:
        return datetime.fromisoformat(self.created_at).year


class EntryTag(BaseModel):
    model_config = {"frozen": True}

    id: int
    entry_id: int
    tag_id: int
