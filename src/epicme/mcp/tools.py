"""MCP tool definitions — 13 tools across 3 categories.

Categories: Entries (5), Tags (7), Video (1).
Each tool has a ``<name>_impl`` function testable without a live session.
``register_tools()`` wraps them with FastMCP decorators.
"""

import logging
from typing import Any

import anyio
from mcp.server.fastmcp import Context

from epicme.mcp.sampling import suggest_tags_sampling
from epicme.services.result import ServiceResult
from epicme.services.video import CancelToken, ProgressCallback

logger = logging.getLogger(__name__)


def _to_mcp_response(result: ServiceResult) -> dict[str, Any]:
    """Convert a ServiceResult to an MCP-friendly dict."""
    response: dict[str, Any] = {
        "ok": result.ok,
        "op": result.op,
        "data": result.data,
    }
    if result.warnings:
        response["warnings"] = result.warnings
    if result.error is not None:
        response["error"] = {
            "code": result.error.code,
            "message": result.error.message,
        }
        if result.error.detail:
            response["error"]["detail"] = result.error.detail
    return response


# ---------------------------------------------------------------------------
# Entry tools (5)
# ---------------------------------------------------------------------------


async def create_entry_impl(
    runtime: Any,
    title: str,
    content: str,
    *,
    mood: str | None = None,
    location: str | None = None,
    weather: str | None = None,
    is_private: bool = True,
    is_favorite: bool = False,
    tags: list[int] | None = None,
    session: Any | None = None,
) -> dict[str, Any]:
    """Create a journal entry; with a *session*, ask it to suggest tags."""
    result = await runtime.entries.create(
        title=title,
        content=content,
        tag_ids=tags,
        mood=mood,
        location=location,
        weather=weather,
        is_private=is_private,
        is_favorite=is_favorite,
    )
    if result.ok and session is not None:
        runtime.spawn(
            suggest_tags_sampling,
            session,
            runtime.journal,
            result.data["entry"]["id"],
            name="suggest_tags_sampling",
        )
    return _to_mcp_response(result)


def get_entry_impl(runtime: Any, entry_id: int) -> dict[str, Any]:
    return _to_mcp_response(runtime.entries.get(entry_id))


def list_entries_impl(runtime: Any, *, tag_id: int | None = None) -> dict[str, Any]:
    return _to_mcp_response(runtime.entries.list(tag_id=tag_id))


async def update_entry_impl(runtime: Any, entry_id: int, **fields: Any) -> dict[str, Any]:
    return _to_mcp_response(await runtime.entries.update(entry_id, **fields))


async def delete_entry_impl(runtime: Any, entry_id: int) -> dict[str, Any]:
    return _to_mcp_response(await runtime.entries.delete(entry_id))


# ---------------------------------------------------------------------------
# Tag tools (7)
# ---------------------------------------------------------------------------


async def create_tag_impl(
    runtime: Any, name: str, *, description: str | None = None
) -> dict[str, Any]:
    return _to_mcp_response(await runtime.tags.create(name=name, description=description))


def get_tag_impl(runtime: Any, tag_id: int) -> dict[str, Any]:
    return _to_mcp_response(runtime.tags.get(tag_id))


def list_tags_impl(runtime: Any) -> dict[str, Any]:
    return _to_mcp_response(runtime.tags.list())


async def update_tag_impl(
    runtime: Any,
    tag_id: int,
    *,
    name: str | None = None,
    description: str | None = None,
) -> dict[str, Any]:
    return _to_mcp_response(await runtime.tags.update(tag_id, name=name, description=description))


async def delete_tag_impl(runtime: Any, tag_id: int) -> dict[str, Any]:
    return _to_mcp_response(await runtime.tags.delete(tag_id))


async def add_tag_to_entry_impl(runtime: Any, entry_id: int, tag_id: int) -> dict[str, Any]:
    return _to_mcp_response(await runtime.tags.add_to_entry(entry_id, tag_id))


async def remove_tag_from_entry_impl(runtime: Any, entry_id: int, tag_id: int) -> dict[str, Any]:
    return _to_mcp_response(await runtime.tags.remove_from_entry(entry_id, tag_id))


# ---------------------------------------------------------------------------
# Video tools (1)
# ---------------------------------------------------------------------------


async def create_wrapped_video_impl(
    runtime: Any,
    *,
    year: int | None = None,
    mock_time: float | None = None,
    on_progress: ProgressCallback | None = None,
    token: CancelToken | None = None,
) -> dict[str, Any]:
    """Render the wrapped video; cancelling the caller kills the renderer.

    Caller-side cancellation (the request being cancelled) is forwarded to
    the pipeline's token before it propagates.
    """
    token = token or CancelToken()
    try:
        result = await runtime.videos.create_wrapped_video(
            year,
            mock_time=mock_time,
            on_progress=on_progress,
            token=token,
        )
    except anyio.get_cancelled_exc_class():
        token.cancel()
        raise
    return _to_mcp_response(result)


# ---------------------------------------------------------------------------
# Registration — wraps _impl functions with FastMCP decorators
# ---------------------------------------------------------------------------


def register_tools(server: Any, runtime: Any) -> None:
    """Register all 13 MCP tools on the FastMCP server."""

    @server.tool()  # type: ignore[untyped-decorator]
    async def create_entry(
        ctx: Context,
        title: str,
        content: str,
        mood: str | None = None,
        location: str | None = None,
        weather: str | None = None,
        is_private: bool = True,
        is_favorite: bool = False,
        tags: list[int] | None = None,
    ) -> dict[str, Any]:
        """Create a new journal entry, optionally with existing tag ids."""
        return await create_entry_impl(
            runtime,
            title,
            content,
            mood=mood,
            location=location,
            weather=weather,
            is_private=is_private,
            is_favorite=is_favorite,
            tags=tags,
            session=ctx.session,
        )

    @server.tool()  # type: ignore[untyped-decorator]
    def get_entry(id: int) -> dict[str, Any]:
        """Get a journal entry by ID."""
        return get_entry_impl(runtime, id)

    @server.tool()  # type: ignore[untyped-decorator]
    def list_entries(tag_id: int | None = None) -> dict[str, Any]:
        """List all journal entries, optionally only those with a tag."""
        return list_entries_impl(runtime, tag_id=tag_id)

    @server.tool()  # type: ignore[untyped-decorator]
    async def update_entry(
        id: int,
        title: str | None = None,
        content: str | None = None,
        mood: str | None = None,
        location: str | None = None,
        weather: str | None = None,
        is_private: bool | None = None,
        is_favorite: bool | None = None,
    ) -> dict[str, Any]:
        """Update a journal entry. Fields that are not provided are left unchanged."""
        return await update_entry_impl(
            runtime,
            id,
            title=title,
            content=content,
            mood=mood,
            location=location,
            weather=weather,
            is_private=is_private,
            is_favorite=is_favorite,
        )

    @server.tool()  # type: ignore[untyped-decorator]
    async def delete_entry(id: int) -> dict[str, Any]:
        """Delete a journal entry."""
        return await delete_entry_impl(runtime, id)

    @server.tool()  # type: ignore[untyped-decorator]
    async def create_tag(name: str, description: str | None = None) -> dict[str, Any]:
        """Create a new tag."""
        return await create_tag_impl(runtime, name, description=description)

    @server.tool()  # type: ignore[untyped-decorator]
    def get_tag(id: int) -> dict[str, Any]:
        """Get a tag by ID."""
        return get_tag_impl(runtime, id)

    @server.tool()  # type: ignore[untyped-decorator]
    def list_tags() -> dict[str, Any]:
        """List all tags."""
        return list_tags_impl(runtime)

    @server.tool()  # type: ignore[untyped-decorator]
    async def update_tag(
        id: int, name: str | None = None, description: str | None = None
    ) -> dict[str, Any]:
        """Update a tag."""
        return await update_tag_impl(runtime, id, name=name, description=description)

    @server.tool()  # type: ignore[untyped-decorator]
    async def delete_tag(id: int) -> dict[str, Any]:
        """Delete a tag. Entries that carried it lose the link."""
        return await delete_tag_impl(runtime, id)

    @server.tool()  # type: ignore[untyped-decorator]
    async def add_tag_to_entry(entry_id: int, tag_id: int) -> dict[str, Any]:
        """Add a tag to a journal entry."""
        return await add_tag_to_entry_impl(runtime, entry_id, tag_id)

    @server.tool()  # type: ignore[untyped-decorator]
    async def remove_tag_from_entry(entry_id: int, tag_id: int) -> dict[str, Any]:
        """Remove a tag from a journal entry."""
        return await remove_tag_from_entry_impl(runtime, entry_id, tag_id)

    @server.tool()  # type: ignore[untyped-decorator]
    async def create_wrapped_video(
        ctx: Context,
        year: int | None = None,
        mock_time: float | None = None,
    ) -> dict[str, Any]:
        """Create a "wrapped" video highlighting stats from your journal for a year.

        Rendering takes a while; progress is reported as it goes and the
        request can be cancelled. ``mock_time`` (seconds) simulates the
        render without running ffmpeg.
        """

        async def _progress(value: float) -> None:
            await ctx.report_progress(value, 1.0)

        return await create_wrapped_video_impl(
            runtime, year=year, mock_time=mock_time, on_progress=_progress
        )
