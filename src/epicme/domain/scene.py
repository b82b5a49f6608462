"""Wrapped-video scene construction.

A scene is an ordered list of timed text overlays over a plain background.
Construction is a pure function of its inputs: the caller supplies the
user name and "today" so repeated runs over the same journal snapshot
produce identical scenes.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from pydantic import BaseModel

from epicme.domain.records import Entry, Tag

DEFAULT_DURATION_SECONDS = 60.0
DEFAULT_FONT_SIZE = 72


class Overlay(BaseModel):
    """One text overlay, visible from *start* to *end* seconds."""

    model_config = {"frozen": True}

    text: str
    color: str
    font_size: int = DEFAULT_FONT_SIZE
    start: float
    end: float


class Scene(BaseModel):
    """Declarative description handed to the renderer."""

    model_config = {"frozen": True}

    year: int
    duration: float
    overlays: tuple[Overlay, ...]
    longest_entry_id: int | None = None
    shortest_entry_id: int | None = None


def longest_entry(entries: Sequence[Entry]) -> Entry | None:
    """Entry with the most content characters; first one wins on ties."""
    if not entries:
        return None
    return max(entries, key=lambda e: len(e.content))


def shortest_entry(entries: Sequence[Entry]) -> Entry | None:
    """Entry with the fewest content characters; first one wins on ties."""
    if not entries:
        return None
    return min(entries, key=lambda e: len(e.content))


def _format_day(day: date) -> str:
    return f"{day:%B} {day.day}, {day.year}"


def build_scene(
    entries: Sequence[Entry],
    tags: Sequence[Tag],
    year: int,
    *,
    username: str,
    today: date,
    duration: float = DEFAULT_DURATION_SECONDS,
) -> Scene:
    """Build the wrapped-video scene for *year*.

    *entries* and *tags* are expected to be already filtered to *year*.
    Overlays split *duration* evenly, in order.
    """
    longest = longest_entry(entries)
    shortest = shortest_entry(entries)

    texts: list[tuple[str, str]] = [
        (f"Hello {username}!", "#FF1493"),
        (f"It is {_format_day(today)}", "#33FF99"),
        (f"Here is your EpicMe wrapped video for {year}", "#66CCFF"),
        (f"You wrote {len(entries)} entries in {year}", "#ff69b4"),
    ]
    if longest is not None:
        texts.append(
            (
                f'Your longest entry was {len(longest.content)} characters\n"{longest.title}"',
                "#FF0000",
            )
        )
    if shortest is not None:
        texts.append(
            (
                f'Your shortest entry was {len(shortest.content)} characters\n"{shortest.title}"',
                "#B39DDB",
            )
        )
    if not entries:
        texts.append((f"You did not write any entries in {year}", "#D2B48C"))
    if tags:
        texts.append((f"And you created {len(tags)} tags in {year}", "#FFB300"))
    else:
        texts.append((f"You did not create any tags in {year}", "#D2B48C"))
    texts.append(("Good job!", "red"))
    texts.append((f"Keep Journaling in {year + 1}!", "#ffa500"))

    per_text = duration / len(texts)
    overlays = tuple(
        Overlay(text=text, color=color, start=per_text * i, end=per_text * (i + 1))
        for i, (text, color) in enumerate(texts)
    )
    return Scene(
        year=year,
        duration=duration,
        overlays=overlays,
        longest_entry_id=longest.id if longest else None,
        shortest_entry_id=shortest.id if shortest else None,
    )
