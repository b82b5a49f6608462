"""Locating and reading ``epicme.toml``.

Lookup order: the ``EPICME_CONFIG`` environment variable, then the
nearest ``epicme.toml`` in the start directory or any of its parents.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from epicme.config.models import EpicMeConfig

CONFIG_FILENAME = "epicme.toml"
CONFIG_ENV_VAR = "EPICME_CONFIG"


class ConfigFileError(ValueError):
    """The config file exists but is not valid TOML."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Invalid TOML in {path}: {reason}")


def find_config(start: Path | None = None) -> Path | None:
    """The config file that applies to *start* (default: CWD), or None.

    An ``EPICME_CONFIG`` that names a missing file disables discovery
    instead of falling back to the walk-up.
    """
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        path = Path(override)
        return path if path.is_file() else None

    origin = (start or Path.cwd()).resolve()
    return next(
        (d / CONFIG_FILENAME for d in (origin, *origin.parents) if (d / CONFIG_FILENAME).is_file()),
        None,
    )


def read_config_data(path: Path) -> dict[str, Any]:
    """Raw TOML tables from *path*."""
    try:
        with path.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigFileError(path, str(exc)) from exc


def load_config(path: Path | None = None, cwd: Path | None = None) -> EpicMeConfig:
    """Validated config from *path* (or the discovered file); defaults if none."""
    path = path or find_config(cwd)
    if path is None:
        return EpicMeConfig()
    return EpicMeConfig.model_validate(read_config_data(path))
