"""Tag suggestions through client-side sampling.

After an entry is created the server asks the client's model to suggest
tags, validates the answer, creates any new tags and links them all.
Results and failures are reported both to the server log and to the
client as MCP log messages.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from mcp import types

from epicme.infrastructure.journal import RecordNotFoundError
from epicme.services.tag_suggestions import MalformedSuggestionError, parse_tag_suggestions

if TYPE_CHECKING:
    from epicme.domain.records import Tag
    from epicme.infrastructure.journal import Journal

logger = logging.getLogger(__name__)

CLIENT_LOGGER = "tag-generator"
MAX_TOKENS = 100

SYSTEM_PROMPT = """
You are a helpful assistant that suggests relevant tags for journal entries to make them easier to categorize and find later.
You will be provided with a journal entry, its current tags, and all existing tags.
Only suggest tags that are not already applied to this entry.
Journal entries should not have more than 4-5 tags and it's perfectly fine to not have any tags at all.
Feel free to suggest new tags that are not currently in the database and they will be created.

You will respond with JSON only.
Example responses:
If you have no suggestions, respond with an empty array:
[]

If you have some suggestions, respond with an array of tag objects. Existing tags have an "id" property, new tags have a "name" and "description" property:
[{"id": 1}, {"name": "New Tag", "description": "The description of the new tag"}, {"id": 24}]
""".strip()


def supports_sampling(session: Any) -> bool:
    return bool(
        session.check_client_capability(
            types.ClientCapabilities(sampling=types.SamplingCapability())
        )
    )


def response_text(result: types.CreateMessageResult) -> str:
    content = result.content
    if not isinstance(content, types.TextContent):
        raise MalformedSuggestionError("", f"expected text content, got {content.type}")
    return content.text


async def suggest_tags_sampling(session: Any, journal: Journal, entry_id: int) -> list[Tag]:
    """Ask the client's model for tags and apply them. Returns the tags added."""
    if not supports_sampling(session):
        logger.warning("Client does not support sampling, skipping tag suggestions")
        return []

    entry = journal.get_entry(entry_id)
    if entry is None:
        raise RecordNotFoundError("entries", entry_id)
    existing = journal.list_tags()
    current = journal.get_entry_tags(entry_id)

    payload = json.dumps(
        {
            "entry": entry.model_dump(),
            "currentTags": [t.model_dump() for t in current],
            "existingTags": [t.model_dump() for t in existing],
        }
    )
    result = await session.create_message(
        messages=[
            types.SamplingMessage(
                role="user",
                content=types.TextContent(type="text", text=payload),
            )
        ],
        max_tokens=MAX_TOKENS,
        system_prompt=SYSTEM_PROMPT,
    )

    try:
        plan = parse_tag_suggestions(response_text(result), existing, current)
    except MalformedSuggestionError as exc:
        logger.error("Error parsing tag suggestions: %s (raw=%r)", exc.reason, exc.raw)
        await session.send_log_message(
            level="error",
            data={
                "message": "Error parsing tag suggestions",
                "modelResponse": exc.raw,
                "error": exc.reason,
            },
            logger=CLIENT_LOGGER,
        )
        raise

    tag_ids = list(plan.existing_ids)
    for suggestion in plan.new_tags:
        tag = await journal.create_tag(name=suggestion.name, description=suggestion.description)
        tag_ids.append(tag.id)
    for tag_id in tag_ids:
        await journal.add_tag_to_entry(entry_id, tag_id)

    wanted = set(tag_ids)
    added = [tag for tag in journal.list_tags() if tag.id in wanted]
    updated = journal.get_entry(entry_id)
    logger.info("Added %d suggested tag(s) to entry %d", len(added), entry_id)
    await session.send_log_message(
        level="info",
        data={
            "message": "Added tags to entry",
            "addedTags": [t.model_dump() for t in added],
            "entry": updated.model_dump() if updated else None,
        },
        logger=CLIENT_LOGGER,
    )
    return added
