"""Tests for runtime wiring."""

from __future__ import annotations

import logging
from typing import Any

import anyio
import pytest

from epicme.config.settings import EpicMeSettings
from epicme.mcp.runtime import EpicMeRuntime, _guarded
from epicme.reactive.gate import DomainCounts
from tests.conftest import RecordingSession

pytestmark = pytest.mark.anyio


class TestWiring:
    async def test_counts(self, runtime: EpicMeRuntime) -> None:
        await runtime.journal.create_entry(title="t", content="c")
        await runtime.journal.create_tag(name="x")
        runtime.media.path_for("v.mp4").write_bytes(b"")
        assert runtime.counts() == DomainCounts(entries=1, tags=1, videos=1)

    async def test_startup_state_is_not_notified(self, settings: EpicMeSettings) -> None:
        first = EpicMeRuntime(settings, load_plugins=False)
        await first.journal.create_entry(title="t", content="c")
        first.close()
        first.journal.engine.dispose()

        second = EpicMeRuntime(settings, load_plugins=False)
        session = RecordingSession()
        second.outbox.attach(session)
        assert second.gate.is_enabled("suggest_tags")
        assert await second.outbox.drain() == 0
        second.close()
        second.journal.engine.dispose()

    async def test_list_change_precedes_point_update(self, runtime: EpicMeRuntime) -> None:
        session = RecordingSession()
        runtime.outbox.attach(session)
        runtime.registry.subscribe_to("epicme://tags/1")
        await runtime.journal.create_tag(name="x")
        await runtime.outbox.drain()
        assert session.sent[0] == "resources"
        assert str(session.sent[1].root.params.uri) == "epicme://tags/1"

    async def test_media_changes_reach_subscribers(self, runtime: EpicMeRuntime) -> None:
        session = RecordingSession()
        runtime.outbox.attach(session)
        runtime.registry.subscribe_to("epicme://videos/a.mp4")
        runtime.media.path_for("a.mp4").write_bytes(b"a")
        await runtime.watcher.poll()
        await runtime.outbox.drain()
        assert session.sent[0] == "resources"
        assert str(session.sent[-1].root.params.uri) == "epicme://videos/a.mp4"

    async def test_close_unsubscribes(self, runtime: EpicMeRuntime) -> None:
        runtime.close()
        assert runtime.bus.subscriber_count == 0


class TestSpawn:
    async def test_spawn_without_task_group(self, runtime: EpicMeRuntime) -> None:
        async def work() -> None:
            raise AssertionError("should not run")

        assert runtime.spawn(work) is False

    async def test_background_failure_is_logged(
        self, runtime: EpicMeRuntime, caplog: pytest.LogCaptureFixture
    ) -> None:
        async def broken() -> None:
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING, logger="epicme.mcp.runtime"):
            async with anyio.create_task_group() as tg:
                runtime.attach_task_group(tg)
                assert runtime.spawn(broken, name="broken") is True
                await anyio.sleep(0.05)
                runtime.detach_task_group(tg)
                tg.cancel_scope.cancel()
        assert "Background task broken failed" in caplog.text


class StubTaskGroup:
    """Records what was started on it instead of running anything."""

    def __init__(self) -> None:
        self.started: list[Any] = []

    def start_soon(self, func: Any, *args: Any, name: Any = None) -> None:
        self.started.append(func)


class TestTaskGroups:
    def test_services_start_once(self, runtime: EpicMeRuntime) -> None:
        first, second = StubTaskGroup(), StubTaskGroup()
        runtime.attach_task_group(first)
        runtime.attach_task_group(second)
        assert first.started == [runtime.outbox.run, runtime.watcher.run]
        assert second.started == []
        assert runtime.lifespan_count == 2

    def test_services_move_when_host_leaves(self, runtime: EpicMeRuntime) -> None:
        first, second = StubTaskGroup(), StubTaskGroup()
        runtime.attach_task_group(first)
        runtime.attach_task_group(second)
        runtime.detach_task_group(first)
        assert second.started == [runtime.outbox.run, runtime.watcher.run]
        runtime.detach_task_group(second)
        assert runtime.lifespan_count == 0

    def test_detaching_a_guest_keeps_host(self, runtime: EpicMeRuntime) -> None:
        first, second = StubTaskGroup(), StubTaskGroup()
        runtime.attach_task_group(first)
        runtime.attach_task_group(second)
        runtime.detach_task_group(second)
        runtime.detach_task_group(second)
        assert first.started == [runtime.outbox.run, runtime.watcher.run]
        assert runtime.lifespan_count == 1

    async def test_spawn_uses_a_live_task_group(self, runtime: EpicMeRuntime) -> None:
        first, second = StubTaskGroup(), StubTaskGroup()
        runtime.attach_task_group(first)
        runtime.attach_task_group(second)
        runtime.detach_task_group(first)

        async def work() -> None:
            return None

        assert runtime.spawn(work, name="work") is True
        assert second.started[-1] is _guarded
        runtime.detach_task_group(second)
        assert runtime.spawn(work) is False
