"""video — render and list wrapped videos from the command line."""

from __future__ import annotations

import signal

import anyio
import click

from epicme.commands._base import EpicGroup
from epicme.commands._context import AppContext
from epicme.output.console import create_progress
from epicme.services.result import ServiceResult
from epicme.services.video import CancelToken


@click.group(
    cls=EpicGroup,
    examples="""\
  epicme video render
  epicme video render --year 2024
  epicme video render --mock-time 5
  epicme video list""",
)
def video() -> None:
    """Render and list wrapped videos."""


@video.command(
    examples="""\
  # Render this year's wrapped video with ffmpeg
  epicme video render

  # Simulate a five second render without ffmpeg
  epicme video render --year 2024 --mock-time 5""",
)
@click.option("--year", type=int, default=None, help="Year to summarize (default: current year).")
@click.option(
    "--mock-time",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Simulate rendering for this many seconds instead of running ffmpeg.",
)
@click.pass_obj
def render(app: AppContext, year: int | None, mock_time: float | None) -> None:
    """Render the wrapped video. Ctrl-C cancels and kills the renderer."""
    service = app.videos
    label = f"Wrapped video {year}" if year else "Wrapped video"
    progress, task_id = create_progress(label)
    token = CancelToken()

    async def _watch_signals() -> None:
        with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
            async for _ in signals:
                token.cancel()
                return

    async def _render() -> ServiceResult:
        async with anyio.create_task_group() as tg:
            tg.start_soon(_watch_signals)
            result = await service.create_wrapped_video(
                year,
                mock_time=mock_time,
                on_progress=lambda value: progress.update(task_id, completed=value),
                token=token,
            )
            tg.cancel_scope.cancel()
        return result

    with progress:
        result = anyio.run(_render)
    app.emit(result)


@video.command(name="list", examples="  epicme video list")
@click.pass_obj
def list_videos(app: AppContext) -> None:
    """List rendered videos."""
    app.emit(app.videos.list_videos())
