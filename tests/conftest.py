"""Shared pytest fixtures and test helpers for epicme tests."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner
from sqlalchemy.engine import Engine

from epicme.config.settings import EpicMeSettings
from epicme.domain.changes import ChangeDescriptor
from epicme.infrastructure.database.engine import init_database
from epicme.infrastructure.journal import Journal
from epicme.mcp.runtime import EpicMeRuntime
from epicme.reactive.bus import ChangeBus


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def settings(tmp_path: Path) -> EpicMeSettings:
    """Settings rooted at a temp directory, no config file."""
    return EpicMeSettings.from_cli(root=tmp_path)


@pytest.fixture
def db_engine(tmp_path: Path) -> Iterator[Engine]:
    """Initialized SQLite engine with all tables created."""
    engine = init_database(tmp_path / "db.sqlite")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def bus() -> ChangeBus[ChangeDescriptor]:
    return ChangeBus("journal")


@pytest.fixture
def journal(db_engine: Engine, bus: ChangeBus[ChangeDescriptor]) -> Journal:
    """Journal publishing on ``bus``; timestamps are fixed in 2025."""
    return Journal(db_engine, bus, clock=FixedClock("2025-03-01T12:00:00+00:00"))


@pytest.fixture
def runtime(settings: EpicMeSettings) -> Iterator[EpicMeRuntime]:
    """Server runtime over a temp journal, without entry-point plugins."""
    rt = EpicMeRuntime(settings, load_plugins=False)
    try:
        yield rt
    finally:
        rt.close()
        rt.journal.engine.dispose()


@pytest.fixture
def _isolated_root(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Change CWD to a temp dir so the CLI uses an isolated database."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("EPICME_CONFIG", raising=False)


# ---------------------------------------------------------------------------
# Shared test helpers
# ---------------------------------------------------------------------------


class FixedClock:
    """Clock returning *timestamp*; ``set`` changes it for later calls."""

    def __init__(self, timestamp: str) -> None:
        self.timestamp = timestamp

    def set(self, timestamp: str) -> None:
        self.timestamp = timestamp

    def __call__(self) -> str:
        return self.timestamp


class RecordingSink:
    """NotificationSink that remembers what it was asked to send."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, Any]] = []

    def list_changed(self, category: str) -> None:
        self.messages.append(("list_changed", category))

    def resource_updated(self, uri: str, label: str) -> None:
        self.messages.append(("resource_updated", (uri, label)))

    def lists(self, category: str | None = None) -> list[str]:
        return [
            c for kind, c in self.messages if kind == "list_changed" and category in (None, c)
        ]

    def updates(self) -> list[str]:
        return [payload[0] for kind, payload in self.messages if kind == "resource_updated"]

    def clear(self) -> None:
        self.messages.clear()


class RecordingSession:
    """Stands in for an MCP ServerSession in outbox tests."""

    _ids = itertools.count(1)

    def __init__(self) -> None:
        self.id = next(self._ids)
        self.sent: list[Any] = []

    async def send_notification(self, notification: Any) -> None:
        self.sent.append(notification)

    async def send_prompt_list_changed(self) -> None:
        self.sent.append("prompts")

    async def send_resource_list_changed(self) -> None:
        self.sent.append("resources")

    async def send_tool_list_changed(self) -> None:
        self.sent.append("tools")
