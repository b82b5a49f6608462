"""Tests for engine creation and schema initialization."""

from __future__ import annotations

from pathlib import Path

from sqlalchemy import inspect, text

from epicme.infrastructure.database import create_db_engine, init_database


class TestCreateEngine:
    def test_memory_engine(self) -> None:
        engine = create_db_engine(":memory:")
        with engine.connect() as conn:
            assert conn.execute(text("SELECT 1")).scalar_one() == 1

    def test_foreign_keys_enabled(self, tmp_path: Path) -> None:
        engine = create_db_engine(tmp_path / "fk.sqlite")
        with engine.connect() as conn:
            assert conn.execute(text("PRAGMA foreign_keys")).scalar_one() == 1


class TestInitDatabase:
    def test_creates_parent_and_tables(self, tmp_path: Path) -> None:
        db_path = tmp_path / "nested" / "dir" / "db.sqlite"
        engine = init_database(db_path)
        assert db_path.exists()
        assert set(inspect(engine).get_table_names()) >= {"entries", "tags", "entry_tags"}

    def test_idempotent(self, tmp_path: Path) -> None:
        init_database(tmp_path / "db.sqlite").dispose()
        engine = init_database(tmp_path / "db.sqlite")
        assert "entries" in inspect(engine).get_table_names()
