"""Wrapped-video pipeline — cancellable, progress-reporting rendering.

Pipeline: PRE-FLIGHT → EXECUTE → NOTIFY

- PRE-FLIGHT: a token that is already cancelled ends the job before
  anything is spawned.
- EXECUTE: the renderer runs as a child process; ``time=`` stamps on its
  stderr become progress. Cancelling the token kills the child with
  SIGKILL. Whatever way the job ends, the listener is removed and the
  child is reaped.
- NOTIFY: on success the media watcher publishes the new file and the
  ``post_render`` hook fires.

Mock mode replaces EXECUTE with ten timed steps and writes no file.
"""

from __future__ import annotations

import contextlib
import getpass
import inspect
import logging
import re
import subprocess
from collections.abc import Awaitable, Callable
from datetime import date
from pathlib import Path
from typing import TYPE_CHECKING, Literal

import anyio
from pydantic import BaseModel

from epicme.config.logging import render_context
from epicme.domain.identities import video_uri
from epicme.domain.scene import DEFAULT_DURATION_SECONDS, Scene, build_scene
from epicme.services.result import CANCELLED, RENDER_FAILED, ServiceResult

if TYPE_CHECKING:
    from epicme.infrastructure.journal import Journal
    from epicme.infrastructure.media import MediaWatcher
    from epicme.infrastructure.renderer import Renderer
    from epicme.plugins.manager import PluginManager

logger = logging.getLogger(__name__)

MOCK_STEPS = 10

ProgressCallback = Callable[[float], Awaitable[None] | None]

_LINE_SPLIT = re.compile(r"[\r\n]")


class CancelToken:
    """One-shot cancellation signal with synchronous listeners."""

    def __init__(self) -> None:
        self._cancelled = False
        self._listeners: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.warning("Cancel listener failed", exc_info=True)

    def add_listener(self, listener: Callable[[], None]) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[], None]) -> None:
        with contextlib.suppress(ValueError):
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)


class RenderOutcome(BaseModel):
    """Terminal state of a :class:`RenderJob`."""

    model_config = {"frozen": True}

    status: Literal["succeeded", "cancelled", "failed"]
    subject: str
    uri: str | None = None
    filename: str | None = None
    reason: str | None = None
    exit_code: int | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"

    @property
    def cancelled(self) -> bool:
        return self.status == "cancelled"


class RenderJob:
    """Progress bookkeeping for one render.

    Progress is clamped to ``[0, 1]`` and never decreases; repeated values
    are not re-reported.
    """

    def __init__(self, scene: Scene, token: CancelToken, on_progress: ProgressCallback | None) -> None:
        self.scene = scene
        self.token = token
        self.subject = f"Creating wrapped video for {scene.year}"
        self.filename = f"wrapped-{scene.year}.mp4"
        self.progress = 0.0
        self._on_progress = on_progress
        self._reported = False

    async def report(self, value: float) -> None:
        value = max(self.progress, min(max(value, 0.0), 1.0))
        if self._reported and value == self.progress:
            return
        self.progress = value
        self._reported = True
        if self._on_progress is not None:
            result = self._on_progress(value)
            if inspect.isawaitable(result):
                await result

    def outcome(self, status: Literal["succeeded", "cancelled", "failed"], **kwargs: object) -> RenderOutcome:
        return RenderOutcome(status=status, subject=self.subject, **kwargs)  # type: ignore[arg-type]

    def succeeded(self) -> RenderOutcome:
        return self.outcome("succeeded", uri=video_uri(self.filename), filename=self.filename)

    def cancelled(self) -> RenderOutcome:
        return self.outcome("cancelled", reason=f"{self.subject} was cancelled")


class RenderPipeline:
    """Runs render jobs and announces their results."""

    def __init__(
        self,
        renderer: Renderer,
        watcher: MediaWatcher,
        plugins: PluginManager | None = None,
    ) -> None:
        self._renderer = renderer
        self._watcher = watcher
        self._plugins = plugins

    @property
    def watcher(self) -> MediaWatcher:
        return self._watcher

    async def start(
        self,
        scene: Scene,
        *,
        on_progress: ProgressCallback | None = None,
        token: CancelToken | None = None,
        mock_time: float | None = None,
    ) -> RenderOutcome:
        job = RenderJob(scene, token or CancelToken(), on_progress)
        with render_context(scene.year):
            return await self._run(job, mock_time)

    async def _run(self, job: RenderJob, mock_time: float | None) -> RenderOutcome:
        scene = job.scene
        # ── PRE-FLIGHT ───────────────────────────────────────────
        if job.token.cancelled:
            logger.debug("%s cancelled before start", job.subject)
            return job.cancelled()

        # ── EXECUTE ──────────────────────────────────────────────
        if mock_time is not None and mock_time > 0:
            outcome = await self._run_mock(job, mock_time)
        else:
            outcome = await self._run_process(job)

        # ── NOTIFY ───────────────────────────────────────────────
        if outcome.succeeded:
            await self._watcher.notify([job.filename])
            if self._plugins is not None:
                self._plugins.dispatch(
                    "post_render", year=scene.year, uri=outcome.uri, filename=job.filename
                )
        logger.info("%s: %s", job.subject, outcome.status)
        return outcome

    async def _run_mock(self, job: RenderJob, mock_time: float) -> RenderOutcome:
        step = mock_time / MOCK_STEPS
        for index in range(MOCK_STEPS):
            if job.token.cancelled:
                return job.cancelled()
            await job.report(index / MOCK_STEPS)
            await anyio.sleep(step)
        if job.token.cancelled:
            return job.cancelled()
        await job.report(1.0)
        return job.succeeded()

    async def _run_process(self, job: RenderJob) -> RenderOutcome:
        output: Path = self._watcher.directory.path_for(job.filename)
        command = list(self._renderer.command(job.scene, output))
        logger.debug("Spawning renderer: %s", command[0])
        try:
            process = await anyio.open_process(
                command, stdin=subprocess.DEVNULL, stdout=subprocess.DEVNULL
            )
        except OSError as exc:
            return job.outcome("failed", reason=f"Could not start renderer {command[0]!r}: {exc}")

        def _kill() -> None:
            if process.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    process.kill()

        job.token.add_listener(_kill)
        try:
            if job.token.cancelled:
                _kill()
            if process.stderr is not None:
                pending = ""
                async for chunk in process.stderr:
                    pending += chunk.decode(errors="replace")
                    *lines, pending = _LINE_SPLIT.split(pending)
                    for line in lines:
                        fraction = self._renderer.parse_progress(line, job.scene.duration)
                        if fraction is not None:
                            await job.report(fraction)
            exit_code = await process.wait()
        finally:
            job.token.remove_listener(_kill)
            _kill()
            with anyio.CancelScope(shield=True):
                await process.aclose()

        if job.token.cancelled:
            return job.cancelled()
        if exit_code == 0:
            await job.report(1.0)
            return job.succeeded()
        return job.outcome(
            "failed",
            reason=f"{command[0]} exited with code {exit_code}",
            exit_code=exit_code,
        )


def default_username() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "friend"


class VideoService:
    """Builds the wrapped-video scene from the journal and runs the pipeline."""

    def __init__(
        self,
        journal: Journal,
        pipeline: RenderPipeline,
        *,
        duration: float = DEFAULT_DURATION_SECONDS,
        username: str | None = None,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._journal = journal
        self._pipeline = pipeline
        self._duration = duration
        self._username = username or default_username()
        self._today = today

    def scene_for(self, year: int) -> Scene:
        return build_scene(
            self._journal.list_entries(year=year),
            self._journal.list_tags(year=year),
            year,
            username=self._username,
            today=self._today(),
            duration=self._duration,
        )

    def list_videos(self) -> ServiceResult:
        names = self._pipeline.watcher.directory.list()
        return ServiceResult(
            ok=True,
            op="list_videos",
            data={"videos": [{"name": n, "uri": video_uri(n)} for n in names], "count": len(names)},
        )

    async def create_wrapped_video(
        self,
        year: int | None = None,
        *,
        mock_time: float | None = None,
        on_progress: ProgressCallback | None = None,
        token: CancelToken | None = None,
    ) -> ServiceResult:
        op = "create_wrapped_video"
        year = year or self._today().year
        outcome = await self._pipeline.start(
            self.scene_for(year),
            on_progress=on_progress,
            token=token,
            mock_time=mock_time,
        )
        if outcome.succeeded:
            return ServiceResult(
                ok=True,
                op=op,
                data={
                    "year": year,
                    "uri": outcome.uri,
                    "filename": outcome.filename,
                    "subject": outcome.subject,
                },
            )
        if outcome.cancelled:
            return ServiceResult.failure(op, CANCELLED, outcome.reason or outcome.subject, year=year)
        return ServiceResult.failure(
            op,
            RENDER_FAILED,
            outcome.reason or f"{outcome.subject} failed",
            year=year,
            exit_code=outcome.exit_code,
        )
