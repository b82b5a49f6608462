"""Validation of model-suggested tags for a journal entry.

The model answers with a JSON array mixing references to existing tags
(``{"id": 3}``) and new tags (``{"name": "...", "description": "..."}``).
Parsing never touches the store: it turns the raw text into a
:class:`TagPlan` the caller applies.
"""

from __future__ import annotations

import json
from collections.abc import Sequence

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from epicme.domain.records import Tag


class ExistingTagSuggestion(BaseModel):
    model_config = {"extra": "forbid"}

    id: int


class NewTagSuggestion(BaseModel):
    model_config = {"extra": "forbid"}

    name: str = Field(min_length=1)
    description: str | None = None


Suggestion = ExistingTagSuggestion | NewTagSuggestion

_SUGGESTIONS = TypeAdapter(list[Suggestion])


class MalformedSuggestionError(ValueError):
    """The model response could not be parsed. Carries the raw payload."""

    def __init__(self, raw: str, reason: str) -> None:
        self.raw = raw
        self.reason = reason
        super().__init__(f"Malformed tag suggestions: {reason}")


class TagPlan(BaseModel):
    """What to do with one response: link these ids, create these tags."""

    model_config = {"frozen": True}

    existing_ids: tuple[int, ...] = ()
    new_tags: tuple[NewTagSuggestion, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.existing_ids and not self.new_tags


def parse_tag_suggestions(raw: str, existing: Sequence[Tag], current: Sequence[Tag]) -> TagPlan:
    """Validate *raw* and resolve it against the store's tags.

    - Names that match an existing tag become references to it.
    - References to unknown ids, and to tags already on the entry, are
      dropped.
    - Repeats collapse; first mention wins.
    """
    try:
        suggestions = _SUGGESTIONS.validate_python(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise MalformedSuggestionError(raw, f"invalid JSON ({exc.msg})") from exc
    except ValidationError as exc:
        raise MalformedSuggestionError(raw, f"unexpected shape ({exc.error_count()} errors)") from exc

    by_name = {tag.name: tag.id for tag in existing}
    known_ids = {tag.id for tag in existing}
    current_ids = {tag.id for tag in current}

    ids: dict[int, None] = {}
    new: dict[str, NewTagSuggestion] = {}
    for suggestion in suggestions:
        if isinstance(suggestion, NewTagSuggestion):
            tag_id = by_name.get(suggestion.name)
            if tag_id is None:
                new.setdefault(suggestion.name, suggestion)
                continue
        else:
            tag_id = suggestion.id
        if tag_id in known_ids and tag_id not in current_ids:
            ids.setdefault(tag_id, None)
    return TagPlan(existing_ids=tuple(ids), new_tags=tuple(new.values()))
