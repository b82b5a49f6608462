"""Tests for parsing model-suggested tags."""

from __future__ import annotations

import pytest

from epicme.domain.records import Tag
from epicme.services.tag_suggestions import (
    MalformedSuggestionError,
    NewTagSuggestion,
    parse_tag_suggestions,
)

STAMP = "2025-01-01T00:00:00+00:00"


def _tag(tag_id: int, name: str) -> Tag:
    return Tag(id=tag_id, name=name, created_at=STAMP, updated_at=STAMP)


EXISTING = [_tag(1, "work"), _tag(2, "family"), _tag(3, "travel")]


class TestParse:
    def test_mixed_suggestions(self) -> None:
        raw = '[{"id": 2}, {"name": "hiking", "description": "Walks"}, {"id": 3}]'
        plan = parse_tag_suggestions(raw, EXISTING, [])
        assert plan.existing_ids == (2, 3)
        assert plan.new_tags == (NewTagSuggestion(name="hiking", description="Walks"),)

    def test_new_name_matching_existing_becomes_reference(self) -> None:
        plan = parse_tag_suggestions('[{"name": "work"}]', EXISTING, [])
        assert plan.existing_ids == (1,)
        assert plan.new_tags == ()

    def test_drops_unknown_and_current(self) -> None:
        plan = parse_tag_suggestions('[{"id": 99}, {"id": 1}, {"id": 2}]', EXISTING, [_tag(1, "work")])
        assert plan.existing_ids == (2,)

    def test_duplicates_collapse(self) -> None:
        raw = '[{"id": 2}, {"id": 2}, {"name": "new"}, {"name": "new", "description": "x"}]'
        plan = parse_tag_suggestions(raw, EXISTING, [])
        assert plan.existing_ids == (2,)
        assert [t.name for t in plan.new_tags] == ["new"]
        assert plan.new_tags[0].description is None

    def test_empty(self) -> None:
        assert parse_tag_suggestions("[]", EXISTING, []).is_empty


class TestMalformed:
    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"id": 1}',
            '[{"id": "x"}]',
            '[{"name": ""}]',
            '[{"id": 1, "name": "both"}]',
            '[{"colour": "red"}]',
        ],
    )
    def test_rejected(self, raw: str) -> None:
        with pytest.raises(MalformedSuggestionError) as excinfo:
            parse_tag_suggestions(raw, EXISTING, [])
        assert excinfo.value.raw == raw
