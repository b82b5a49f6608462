"""MCP prompt definitions — the gated ``suggest_tags`` prompt.

The prompt embeds the entry and the existing tags as resources, so the
model has everything it needs without calling back into the server.
Available only while the journal has at least one entry.
"""

from __future__ import annotations

import json
from typing import Any

from mcp import types
from mcp.server.fastmcp.prompts.base import Message, UserMessage
from pydantic import AnyUrl

from epicme.domain.identities import entry_uri
from epicme.mcp.runtime import SUGGEST_TAGS_PROMPT, TAGS_RESOURCE


def _embedded_json(uri: str, payload: Any) -> types.EmbeddedResource:
    return types.EmbeddedResource(
        type="resource",
        resource=types.TextResourceContents(
            uri=AnyUrl(uri),
            mimeType="application/json",
            text=json.dumps(payload),
        ),
    )


# ---------------------------------------------------------------------------
# Prompt implementations (testable without a session)
# ---------------------------------------------------------------------------


def suggest_tags_impl(runtime: Any, entry_id: str) -> list[Message]:
    """Instructions plus the entry and the tag list as embedded resources."""
    try:
        entry = runtime.journal.get_entry(int(entry_id))
    except ValueError:
        entry = None
    if entry is None:
        msg = f'Entry with ID "{entry_id}" not found'
        raise ValueError(msg)
    tags = [t.model_dump() for t in runtime.journal.list_tags()]
    return [
        UserMessage(
            f"""
Below is my EpicMe journal entry with ID "{entry.id}" and the tags I have available.

Please suggest some tags to add to it. Feel free to suggest new tags I don't have yet.

For each tag I approve, if it does not yet exist, create it with the EpicMe "create_tag" tool. Then add approved tags to the entry with the EpicMe "add_tag_to_entry" tool.
""".strip()
        ),
        UserMessage(content=_embedded_json(TAGS_RESOURCE, tags)),
        UserMessage(content=_embedded_json(entry_uri(entry.id), entry.model_dump())),
    ]


# ---------------------------------------------------------------------------
# Registration — wraps _impl functions with FastMCP decorators
# ---------------------------------------------------------------------------


def register_prompts(server: Any, runtime: Any) -> None:
    """Register the suggest_tags prompt on the FastMCP server."""

    @server.prompt(name=SUGGEST_TAGS_PROMPT)  # type: ignore[untyped-decorator]
    def suggest_tags(entry_id: str) -> list[Message]:
        """Suggest tags for a journal entry."""
        return suggest_tags_impl(runtime, entry_id)
