"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, epicme.toml only contains overrides.
A fresh install needs no config file at all.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

# --- epicme.toml sections ---


class JournalConfig(BaseModel):
    """[journal] section."""

    model_config = {"frozen": True}

    db_path: Path = Path("db.sqlite")


class MediaConfig(BaseModel):
    """[media] section."""

    model_config = {"frozen": True}

    videos_dir: Path = Path("videos")


class RendererConfig(BaseModel):
    """[renderer] section."""

    model_config = {"frozen": True}

    binary: str = "ffmpeg"
    font_path: Path = Path("other/caveat-variable-font.ttf")
    duration_seconds: float = 60.0
    width: int = 1280
    height: int = 720
    preset: str = "veryslow"
    crf: int = 32


class WatcherConfig(BaseModel):
    """[watcher] section.

    External changes to the videos directory are observed within one
    ``poll_interval`` (seconds) plus the time of a single directory scan.
    """

    model_config = {"frozen": True}

    poll_interval: float = Field(default=1.0, gt=0)


class McpConfig(BaseModel):
    """[mcp] section."""

    model_config = {"frozen": True}

    transport: str = "stdio"
    host: str = "127.0.0.1"
    port: int = 8000


class EpicMeConfig(BaseModel):
    """Root config model — mirrors the full epicme.toml structure."""

    model_config = {"frozen": True}

    journal: JournalConfig = Field(default_factory=JournalConfig)
    media: MediaConfig = Field(default_factory=MediaConfig)
    renderer: RendererConfig = Field(default_factory=RendererConfig)
    watcher: WatcherConfig = Field(default_factory=WatcherConfig)
    mcp: McpConfig = Field(default_factory=McpConfig)
