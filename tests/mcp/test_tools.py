"""Tests for MCP tool _impl functions and their notifications."""

from __future__ import annotations

import anyio
import pytest

from epicme.mcp.runtime import EpicMeRuntime
from epicme.mcp.tools import (
    add_tag_to_entry_impl,
    create_entry_impl,
    create_tag_impl,
    create_wrapped_video_impl,
    delete_entry_impl,
    delete_tag_impl,
    get_entry_impl,
    get_tag_impl,
    list_entries_impl,
    list_tags_impl,
    remove_tag_from_entry_impl,
    update_entry_impl,
    update_tag_impl,
)
from epicme.services.video import CancelToken
from tests.conftest import RecordingSession

pytestmark = pytest.mark.anyio


@pytest.fixture
def session(runtime: EpicMeRuntime) -> RecordingSession:
    session = RecordingSession()
    runtime.outbox.attach(session)
    return session


class TestEntryTools:
    async def test_create_returns_ok(self, runtime: EpicMeRuntime) -> None:
        resp = await create_entry_impl(runtime, "First", "Hello", mood="calm")
        assert resp["ok"] is True
        assert resp["op"] == "create_entry"
        assert resp["data"]["entry"]["mood"] == "calm"
        assert "error" not in resp

    async def test_create_with_session_outside_lifespan(self, runtime: EpicMeRuntime) -> None:
        resp = await create_entry_impl(runtime, "First", "Hello", session=object())
        assert resp["ok"] is True

    async def test_crud_cycle(self, runtime: EpicMeRuntime) -> None:
        await create_entry_impl(runtime, "First", "Hello")
        assert get_entry_impl(runtime, 1)["data"]["entry"]["title"] == "First"
        assert list_entries_impl(runtime)["data"]["count"] == 1
        updated = await update_entry_impl(runtime, 1, title="Renamed", mood=None)
        assert updated["data"]["entry"]["title"] == "Renamed"
        assert (await delete_entry_impl(runtime, 1))["ok"] is True
        missing = get_entry_impl(runtime, 1)
        assert missing["ok"] is False
        assert missing["error"]["code"] == "NOT_FOUND"
        assert missing["error"]["detail"] == {"identity": "entries/1"}


class TestTagTools:
    async def test_tag_cycle(self, runtime: EpicMeRuntime) -> None:
        await create_entry_impl(runtime, "First", "Hello")
        created = await create_tag_impl(runtime, "work", description="Job")
        assert created["data"]["uri"] == "epicme://tags/1"
        assert get_tag_impl(runtime, 1)["data"]["tag"]["description"] == "Job"
        assert list_tags_impl(runtime)["data"]["count"] == 1
        assert (await update_tag_impl(runtime, 1, name="career"))["data"]["tag"]["name"] == "career"

        assert (await add_tag_to_entry_impl(runtime, 1, 1))["ok"] is True
        assert list_entries_impl(runtime, tag_id=1)["data"]["count"] == 1
        assert (await remove_tag_from_entry_impl(runtime, 1, 1))["ok"] is True
        assert (await delete_tag_impl(runtime, 1))["ok"] is True
        assert list_tags_impl(runtime)["data"]["count"] == 0

    async def test_duplicate_tag(self, runtime: EpicMeRuntime) -> None:
        await create_tag_impl(runtime, "work")
        resp = await create_tag_impl(runtime, "work")
        assert resp["error"]["code"] == "DUPLICATE"


class TestNotifications:
    async def test_first_entry_enables_prompt(self, runtime, session) -> None:
        await create_entry_impl(runtime, "First", "Hello")
        await runtime.outbox.drain()
        assert session.sent == ["prompts", "resources"]
        assert runtime.gate.is_enabled("suggest_tags")
        await create_entry_impl(runtime, "Second", "Hello")
        await runtime.outbox.drain()
        assert session.sent == ["prompts", "resources"]

    async def test_first_tag_sends_one_resources_change(self, runtime, session) -> None:
        await create_tag_impl(runtime, "work")
        assert await runtime.outbox.drain() == 1
        assert session.sent == ["resources"]

    async def test_subscribed_entry_gets_point_update(self, runtime, session) -> None:
        await create_entry_impl(runtime, "First", "Hello")
        await runtime.outbox.drain()
        session.sent.clear()
        runtime.registry.subscribe_to("epicme://entries/1")

        await update_entry_impl(runtime, 1, title="Changed")
        await update_entry_impl(runtime, 1, title="Changed again")
        await runtime.outbox.drain()

        uris = [str(n.root.params.uri) for n in session.sent]
        assert uris == ["epicme://entries/1", "epicme://entries/1"]

    async def test_deleting_last_entry_disables_prompt(self, runtime, session) -> None:
        await create_entry_impl(runtime, "First", "Hello")
        await runtime.outbox.drain()
        session.sent.clear()

        await delete_entry_impl(runtime, 1)
        await runtime.outbox.drain()
        assert session.sent.count("prompts") == 1
        assert not runtime.gate.is_enabled("suggest_tags")

        session.sent.clear()
        runtime.gate.recompute()
        assert await runtime.outbox.drain() == 0

    async def test_point_updates_only_for_the_subscribed_entry(self, runtime, session) -> None:
        for day in range(1, 9):
            await create_entry_impl(runtime, f"Day {day}", "Hello")
        await runtime.outbox.drain()
        session.sent.clear()
        runtime.registry.subscribe_to("epicme://entries/7")

        await runtime.journal.update_entry(8, title="Changed")
        await runtime.outbox.drain()
        assert session.sent == []

        await runtime.journal.update_entry(7, title="Changed")
        await runtime.outbox.drain()
        assert [str(n.root.params.uri) for n in session.sent] == ["epicme://entries/7"]

    async def test_entry_with_existing_tags_keeps_resource_list(self, runtime, session) -> None:
        await create_tag_impl(runtime, "work")
        await create_entry_impl(runtime, "First", "Hello")
        await runtime.outbox.drain()
        session.sent.clear()

        await create_entry_impl(runtime, "Second", "Tagged", tags=[1])
        await runtime.outbox.drain()
        assert session.sent == []

    async def test_deleting_last_tag_disables_tag_resources(self, runtime, session) -> None:
        await create_tag_impl(runtime, "work")
        await runtime.outbox.drain()
        session.sent.clear()
        await delete_tag_impl(runtime, 1)
        await runtime.outbox.drain()
        assert session.sent == ["resources"]
        assert not runtime.gate.is_enabled("epicme://tags")


class TestVideoTool:
    async def test_mock_render(self, runtime, session) -> None:
        progress: list[float] = []
        resp = await create_wrapped_video_impl(
            runtime, year=2025, mock_time=0.01, on_progress=progress.append
        )
        assert resp["ok"] is True
        assert resp["data"]["uri"] == "epicme://videos/wrapped-2025.mp4"
        assert progress[-1] == 1.0
        await runtime.outbox.drain()
        assert session.sent == ["resources"]

    async def test_cancelled_token(self, runtime) -> None:
        token = CancelToken()
        token.cancel()
        resp = await create_wrapped_video_impl(runtime, year=2025, mock_time=0.01, token=token)
        assert resp["error"]["code"] == "CANCELLED"

    async def test_caller_cancellation_cancels_token(self, runtime) -> None:
        token = CancelToken()
        started = anyio.Event()

        async def run() -> None:
            await create_wrapped_video_impl(
                runtime, mock_time=5.0, token=token, on_progress=lambda _: started.set()
            )

        with anyio.fail_after(5):
            async with anyio.create_task_group() as tg:
                tg.start_soon(run)
                await started.wait()
                tg.cancel_scope.cancel()
        assert token.cancelled
