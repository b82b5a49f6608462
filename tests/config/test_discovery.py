"""Tests for config discovery and loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from epicme.config.discovery import CONFIG_ENV_VAR, ConfigFileError, find_config, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestFindConfig:
    def test_finds_in_start_dir(self, tmp_path: Path) -> None:
        cfg = tmp_path / "epicme.toml"
        cfg.write_text("")
        assert find_config(tmp_path) == cfg.resolve()

    def test_walks_up(self, tmp_path: Path) -> None:
        cfg = tmp_path / "epicme.toml"
        cfg.write_text("")
        deep = tmp_path / "x" / "y" / "z"
        deep.mkdir(parents=True)
        assert find_config(deep) == cfg.resolve()

    def test_env_var_wins(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "epicme.toml").write_text("")
        other = tmp_path / "other.toml"
        other.write_text("")
        monkeypatch.setenv(CONFIG_ENV_VAR, str(other))
        assert find_config(tmp_path) == other

    def test_env_var_missing_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(CONFIG_ENV_VAR, str(tmp_path / "gone.toml"))
        assert find_config(tmp_path) is None


class TestLoadConfig:
    def test_defaults_when_absent(self, tmp_path: Path) -> None:
        config = load_config(cwd=tmp_path)
        assert config.renderer.duration_seconds == 60.0

    def test_sparse_override(self, tmp_path: Path) -> None:
        cfg = tmp_path / "epicme.toml"
        cfg.write_text('[mcp]\nport = 9001\n[renderer]\npreset = "ultrafast"\n')
        config = load_config(cfg)
        assert config.mcp.port == 9001
        assert config.mcp.host == "127.0.0.1"
        assert config.renderer.preset == "ultrafast"

    def test_invalid_toml(self, tmp_path: Path) -> None:
        cfg = tmp_path / "epicme.toml"
        cfg.write_text("[mcp\n")
        with pytest.raises(ConfigFileError, match="Invalid TOML"):
            load_config(cfg)
