"""AppContext — shared Click context for all commands.

Created once by the root CLI group and flows to all subcommands via
``@click.pass_obj``. Store and pipeline objects are built lazily so
``--help`` and ``--version`` never touch the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import click

from epicme.config.logging import configure_logging
from epicme.output.formatters import format_result

if TYPE_CHECKING:
    from epicme.config.settings import EpicMeSettings
    from epicme.infrastructure.journal import Journal
    from epicme.services.result import ServiceResult
    from epicme.services.video import VideoService


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: EpicMeSettings) -> None:
        self.settings = settings
        self._journal: Journal | None = None
        self._videos: VideoService | None = None
        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    @property
    def journal(self) -> Journal:
        """The journal store (created lazily on first access, no bus)."""
        if self._journal is None:
            from epicme.infrastructure.database import init_database
            from epicme.infrastructure.journal import Journal

            self._journal = Journal(init_database(self.settings.db_path))
        return self._journal

    @property
    def videos(self) -> VideoService:
        """Video service wired to the configured renderer and plugins."""
        if self._videos is None:
            from epicme.infrastructure.media import MediaDirectory, MediaWatcher
            from epicme.infrastructure.renderer import FfmpegRenderer
            from epicme.plugins.manager import PluginManager
            from epicme.services.video import RenderPipeline, VideoService

            plugins = PluginManager()
            plugins.discover_and_load()
            watcher = MediaWatcher(
                MediaDirectory(self.settings.videos_dir),
                poll_interval=self.settings.watcher.poll_interval,
            )
            watcher.subscribe(plugins.on_change, name="plugins")
            pipeline = RenderPipeline(
                FfmpegRenderer(self.settings.renderer, self.settings.font_path),
                watcher,
                plugins,
            )
            self._videos = VideoService(
                self.journal,
                pipeline,
                duration=self.settings.renderer.duration_seconds,
            )
        return self._videos

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success (``result.ok``): writes to stdout, returns normally.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(result, verbose=self.settings.verbose)
        if result.ok:
            click.echo(output)
            for warning in result.warnings:
                click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
