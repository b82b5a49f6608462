"""EpicMeSettings — one frozen object for CLI flags, env vars and epicme.toml.

Sources, strongest first:

1. keyword arguments (CLI flags, ``from_cli(**flags)``)
2. ``EPICME_*`` environment variables (``__`` separates nested keys, e.g.
   ``EPICME_WATCHER__POLL_INTERVAL=0.5``)
3. the discovered ``epicme.toml``
4. defaults from :mod:`epicme.config.models`

Relative paths in ``[journal]``, ``[media]`` and ``[renderer]`` resolve
against :attr:`EpicMeSettings.root`, the directory holding the config
file (or the working directory when there is none).
"""

from __future__ import annotations

from contextvars import ContextVar
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from epicme.config.discovery import ConfigFileError, find_config, read_config_data
from epicme.config.models import (
    JournalConfig,
    McpConfig,
    MediaConfig,
    RendererConfig,
    WatcherConfig,
)

# Config file for the settings object currently being built by from_cli().
_active_config: ContextVar[Path | None] = ContextVar("epicme_active_config", default=None)


class TomlFileSource(PydanticBaseSettingsSource):
    """Top-level TOML tables, one per settings section."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None) -> None:
        super().__init__(settings_cls)
        self._tables = read_config_data(path) if path is not None else {}

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return self._tables.get(field_name), field_name, field_name in self._tables

    def __call__(self) -> dict[str, Any]:
        return {name: value for name, value in self._tables.items() if name in self.settings_cls.model_fields}


class EpicMeSettings(BaseSettings):
    """Settings for the server and the CLI.

    Attributes:
        root: Base directory for relative paths.
        config_path: The ``epicme.toml`` in effect, if any.
    """

    model_config = SettingsConfigDict(
        frozen=True,
        env_prefix="EPICME_",
        env_nested_delimiter="__",
    )

    root: Path = Field(default_factory=Path.cwd)
    config_path: Path | None = None

    verbose: bool = False
    log_json: bool = False

    journal: JournalConfig = Field(default_factory=JournalConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, env_settings, TomlFileSource(settings_cls, _active_config.get()))

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        root: Path | None = None,
        **cli_flags: Any,
    ) -> EpicMeSettings:
        """Build settings for one invocation.

        An explicit *config_path* that does not exist is ignored (defaults
        apply); otherwise the file is discovered from *root* or the CWD.
        Invalid TOML is reported as a :class:`click.ClickException`.
        """
        if config_path:
            toml_path = Path(config_path) if Path(config_path).is_file() else None
        else:
            toml_path = find_config(root)
        if root is None:
            root = toml_path.parent if toml_path else Path.cwd()

        token = _active_config.set(toml_path)
        try:
            return cls(root=root, config_path=toml_path, **cli_flags)
        except ConfigFileError as exc:
            raise click.ClickException(str(exc)) from exc
        finally:
            _active_config.reset(token)

    @property
    def db_path(self) -> Path:
        """SQLite journal database."""
        return self._resolve(self.journal.db_path)

    @property
    def videos_dir(self) -> Path:
        """Directory rendered videos are written to and served from."""
        return self._resolve(self.media.videos_dir)

    @property
    def font_path(self) -> Path:
        return self._resolve(self.renderer.font_path)

    def _resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.root / path
