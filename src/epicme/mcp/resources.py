"""MCP resource definitions — one static resource and three templates.

URIs: epicme://tags, epicme://tags/{id}, epicme://entries/{id},
epicme://videos/{filename}. All four are gated: the server hides them
while the corresponding category is empty.
Each resource has a ``<name>_impl`` function testable without a live session.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import unquote

from mcp import types
from mcp.server.fastmcp.exceptions import ResourceError
from pydantic import AnyUrl

from epicme.domain.identities import tag_uri, video_uri
from epicme.infrastructure.media import MediaNotFoundError
from epicme.mcp.runtime import ENTRY_TEMPLATE, TAG_TEMPLATE, TAGS_RESOURCE, VIDEO_TEMPLATE

JSON_MIME = "application/json"
VIDEO_MIME = "video/mp4"


def _parse_id(kind: str, raw: str) -> int:
    try:
        return int(raw)
    except ValueError as exc:
        raise ResourceError(f'{kind} with ID "{raw}" not found') from exc


# ---------------------------------------------------------------------------
# Resource implementations (testable without a session)
# ---------------------------------------------------------------------------


def tags_impl(runtime: Any) -> str:
    """All tags as JSON."""
    return json.dumps([t.model_dump() for t in runtime.journal.list_tags()])


def tag_impl(runtime: Any, tag_id: str) -> str:
    tag = runtime.journal.get_tag(_parse_id("Tag", tag_id))
    if tag is None:
        raise ResourceError(f'Tag with ID "{tag_id}" not found')
    return json.dumps(tag.model_dump())


def entry_impl(runtime: Any, entry_id: str) -> str:
    entry = runtime.journal.get_entry(_parse_id("Entry", entry_id))
    if entry is None:
        raise ResourceError(f'Entry with ID "{entry_id}" not found')
    return json.dumps(entry.model_dump())


def video_impl(runtime: Any, filename: str) -> bytes:
    """Video bytes; *filename* may arrive percent-encoded from the URI."""
    try:
        return bytes(runtime.media.read(unquote(filename)))
    except MediaNotFoundError as exc:
        raise ResourceError(str(exc)) from exc


def tag_instances(runtime: Any) -> list[types.Resource]:
    """One listable resource per tag."""
    return [
        types.Resource(
            uri=AnyUrl(tag_uri(tag.id)),
            name=tag.name,
            description=tag.description,
            mimeType=JSON_MIME,
        )
        for tag in runtime.journal.list_tags()
    ]


def video_instances(runtime: Any) -> list[types.Resource]:
    """One listable resource per file in the videos directory."""
    return [
        types.Resource(
            uri=AnyUrl(video_uri(name)),
            name=name,
            description=f"Video: {name}",
            mimeType=VIDEO_MIME,
        )
        for name in runtime.media.list()
    ]


# ---------------------------------------------------------------------------
# Registration — wraps _impl functions with FastMCP decorators
# ---------------------------------------------------------------------------


def register_resources(server: Any, runtime: Any) -> None:
    """Register the tag list resource and the three resource templates."""

    @server.resource(TAGS_RESOURCE, name="Tags", mime_type=JSON_MIME)  # type: ignore[untyped-decorator]
    def tags_resource() -> str:
        """All tags currently in the journal."""
        return tags_impl(runtime)

    @server.resource(TAG_TEMPLATE, name="Tag", mime_type=JSON_MIME)  # type: ignore[untyped-decorator]
    def tag_resource(id: str) -> str:
        """A single tag by ID."""
        return tag_impl(runtime, id)

    @server.resource(ENTRY_TEMPLATE, name="Journal Entry", mime_type=JSON_MIME)  # type: ignore[untyped-decorator]
    def entry_resource(id: str) -> str:
        """A single journal entry by ID."""
        return entry_impl(runtime, id)

    @server.resource(VIDEO_TEMPLATE, name="EpicMe Videos", mime_type=VIDEO_MIME)  # type: ignore[untyped-decorator]
    def video_resource(filename: str) -> bytes:
        """A rendered video by filename."""
        return video_impl(runtime, filename)
