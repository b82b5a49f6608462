"""Media directory access and a poll-based watcher over it.

The watcher compares directory snapshots (filename -> mtime and size) and
publishes a :class:`ChangeDescriptor` naming every added, removed or
modified file on its own :class:`ChangeBus`. Writers inside the process
(the video pipeline) call :meth:`MediaWatcher.notify` directly instead of
waiting for the next poll.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import NamedTuple

import anyio

from epicme.domain.changes import ChangeDescriptor
from epicme.reactive.bus import ChangeBus, Handler, Subscription

logger = logging.getLogger(__name__)


class MediaNotFoundError(LookupError):
    """Raised when a media file does not exist (or may not be served)."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Video with ID "{name}" not found.')


class FileStamp(NamedTuple):
    mtime_ns: int
    size: int


Snapshot = dict[str, FileStamp]


class MediaDirectory:
    """Flat directory of media files addressed by filename."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: str) -> Path:
        """Path that *name* would be written to; the directory is created."""
        self._root.mkdir(parents=True, exist_ok=True)
        return self._root / self._checked(name)

    def list(self) -> list[str]:
        """Sorted filenames. A missing or unreadable directory is empty."""
        return sorted(self.snapshot())

    def count(self) -> int:
        return len(self.snapshot())

    def read(self, name: str) -> bytes:
        path = self._root / self._checked(name)
        try:
            return path.read_bytes()
        except (FileNotFoundError, IsADirectoryError, NotADirectoryError) as exc:
            raise MediaNotFoundError(name) from exc

    def snapshot(self) -> Snapshot:
        try:
            children = list(self._root.iterdir())
        except OSError:
            return {}
        result: Snapshot = {}
        for child in children:
            try:
                stat = child.stat()
            except OSError:
                continue
            if child.is_file() and not child.name.startswith("."):
                result[child.name] = FileStamp(stat.st_mtime_ns, stat.st_size)
        return result

    def _checked(self, name: str) -> str:
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise MediaNotFoundError(name)
        return name


def diff_snapshots(before: Snapshot, after: Snapshot) -> list[str]:
    """Names added, removed or modified between two snapshots, sorted.

    Examples:
        >>> a = {"a.mp4": FileStamp(1, 10)}
        >>> diff_snapshots(a, {"a.mp4": FileStamp(2, 10), "b.mp4": FileStamp(1, 1)})
        ['a.mp4', 'b.mp4']
        >>> diff_snapshots(a, {})
        ['a.mp4']
        >>> diff_snapshots(a, dict(a))
        []
    """
    names = before.keys() | after.keys()
    return sorted(name for name in names if before.get(name) != after.get(name))


class MediaWatcher:
    """Publishes media changes observed by polling a :class:`MediaDirectory`."""

    def __init__(self, directory: MediaDirectory, *, poll_interval: float = 1.0) -> None:
        self._directory = directory
        self._poll_interval = poll_interval
        self._bus: ChangeBus[ChangeDescriptor] = ChangeBus("media")
        self._snapshot: Snapshot = directory.snapshot()

    @property
    def directory(self) -> MediaDirectory:
        return self._directory

    def subscribe(self, handler: Handler[ChangeDescriptor], *, name: str | None = None) -> Subscription:
        return self._bus.subscribe(handler, name=name)

    def unsubscribe(self, token: Subscription) -> None:
        self._bus.unsubscribe(token)

    async def poll(self) -> list[str]:
        """Scan once; publish if anything changed. Returns the changed names."""
        current = self._directory.snapshot()
        changed = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        if changed:
            logger.debug("Media changed: %s", changed)
            await self._bus.publish(ChangeDescriptor.for_videos(*changed))
        return changed

    async def notify(self, filenames: Iterable[str]) -> None:
        """Publish a change for *filenames* now and fold it into the snapshot."""
        names = tuple(dict.fromkeys(filenames))
        self._snapshot = self._directory.snapshot()
        await self._bus.publish(ChangeDescriptor.for_videos(*names))

    async def run(self) -> None:
        """Poll forever at ``poll_interval``; cancel the task to stop."""
        logger.debug(
            "Watching %s every %.2fs", self._directory.root, self._poll_interval
        )
        while True:
            await anyio.sleep(self._poll_interval)
            await self.poll()
