"""Tests for the media directory and poll-based watcher."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from epicme.domain.changes import ChangeDescriptor
from epicme.infrastructure.media import (
    FileStamp,
    MediaDirectory,
    MediaNotFoundError,
    MediaWatcher,
    diff_snapshots,
)


@pytest.fixture
def media(tmp_path: Path) -> MediaDirectory:
    return MediaDirectory(tmp_path / "videos")


class TestMediaDirectory:
    def test_missing_directory_is_empty(self, media: MediaDirectory) -> None:
        assert media.list() == []
        assert media.count() == 0

    def test_list_sorted_skips_hidden_and_dirs(self, media: MediaDirectory) -> None:
        media.root.mkdir()
        (media.root / "b.mp4").write_bytes(b"b")
        (media.root / "a.mp4").write_bytes(b"a")
        (media.root / ".partial").write_bytes(b"x")
        (media.root / "sub").mkdir()
        assert media.list() == ["a.mp4", "b.mp4"]
        assert media.count() == 2

    def test_path_for_creates_directory(self, media: MediaDirectory) -> None:
        path = media.path_for("wrapped-2025.mp4")
        assert media.root.is_dir()
        assert path == media.root / "wrapped-2025.mp4"

    def test_read(self, media: MediaDirectory) -> None:
        media.path_for("v.mp4").write_bytes(b"\x00\x01")
        assert media.read("v.mp4") == b"\x00\x01"

    def test_read_missing(self, media: MediaDirectory) -> None:
        with pytest.raises(MediaNotFoundError, match='Video with ID "nope.mp4" not found'):
            media.read("nope.mp4")

    @pytest.mark.parametrize("name", ["", ".", "..", "../db.sqlite", "a/b", "a\\b"])
    def test_rejects_traversal(self, media: MediaDirectory, name: str) -> None:
        with pytest.raises(MediaNotFoundError):
            media.read(name)


class TestDiffSnapshots:
    def test_added_removed_modified(self) -> None:
        before = {"keep": FileStamp(1, 1), "gone": FileStamp(1, 1), "mod": FileStamp(1, 1)}
        after = {"keep": FileStamp(1, 1), "mod": FileStamp(1, 2), "new": FileStamp(1, 1)}
        assert diff_snapshots(before, after) == ["gone", "mod", "new"]


@pytest.mark.anyio
class TestMediaWatcher:
    async def test_poll_publishes_additions(self, media: MediaDirectory) -> None:
        watcher = MediaWatcher(media, poll_interval=0.01)
        events: list[ChangeDescriptor] = []
        watcher.subscribe(events.append)

        media.path_for("a.mp4").write_bytes(b"a")
        assert await watcher.poll() == ["a.mp4"]
        assert events == [ChangeDescriptor.for_videos("a.mp4")]

    async def test_quiet_poll_publishes_nothing(self, media: MediaDirectory) -> None:
        media.path_for("a.mp4").write_bytes(b"a")
        watcher = MediaWatcher(media)
        events: list[ChangeDescriptor] = []
        watcher.subscribe(events.append)
        assert await watcher.poll() == []
        assert events == []

    async def test_poll_sees_modification_and_removal(self, media: MediaDirectory) -> None:
        path = media.path_for("a.mp4")
        path.write_bytes(b"a")
        watcher = MediaWatcher(media)
        path.write_bytes(b"longer")
        os.utime(path, ns=(1, 1))
        assert await watcher.poll() == ["a.mp4"]
        path.unlink()
        assert await watcher.poll() == ["a.mp4"]

    async def test_notify_publishes_and_absorbs_change(self, media: MediaDirectory) -> None:
        watcher = MediaWatcher(media)
        events: list[ChangeDescriptor] = []
        watcher.subscribe(events.append)

        media.path_for("w.mp4").write_bytes(b"w")
        await watcher.notify(["w.mp4", "w.mp4"])
        assert events == [ChangeDescriptor.for_videos("w.mp4")]
        assert await watcher.poll() == []

    async def test_unsubscribe(self, media: MediaDirectory) -> None:
        watcher = MediaWatcher(media)
        events: list[ChangeDescriptor] = []
        token = watcher.subscribe(events.append)
        watcher.unsubscribe(token)
        await watcher.notify(["x.mp4"])
        assert events == []
