"""Tests for metadata store connection management."""

from pathlib import Path

import pytest
from sqlalchemy import func, select

from tabload.core.connections import ConnectionConfig, ConnectionManager
from tabload.storage import Dataset, reset_database


class TestConnectionConfig:
    def test_in_memory(self):
        config = ConnectionConfig.in_memory()

        assert config.is_sqlite
        assert config.is_memory

    def test_for_directory_creates_directory(self, tmp_path: Path):
        output_dir = tmp_path / "output"

        config = ConnectionConfig.for_directory(output_dir)

        assert output_dir.is_dir()
        assert config.database_url == f"sqlite:///{output_dir / 'metadata.db'}"
        assert config.is_sqlite
        assert not config.is_memory


class TestConnectionManager:
    def test_requires_initialize(self):
        manager = ConnectionManager(ConnectionConfig.in_memory())

        with pytest.raises(RuntimeError, match="not initialized"):
            with manager.session_scope():
                pass

    def test_initialize_is_idempotent(self, manager: ConnectionManager):
        engine = manager.engine
        manager.initialize()

        assert manager.engine is engine

    def test_session_scope_commits(self, manager: ConnectionManager):
        with manager.session_scope() as session:
            session.add(Dataset(name="sales"))

        with manager.session_scope() as session:
            assert session.scalar(select(func.count()).select_from(Dataset)) == 1

    def test_session_scope_rolls_back_on_error(self, manager: ConnectionManager):
        with pytest.raises(ValueError):
            with manager.session_scope() as session:
                session.add(Dataset(name="sales"))
                session.flush()
                raise ValueError("boom")

        with manager.session_scope() as session:
            assert session.scalar(select(func.count()).select_from(Dataset)) == 0

    def test_file_database(self, tmp_path: Path):
        manager = ConnectionManager(ConnectionConfig.for_directory(tmp_path))
        manager.initialize()
        try:
            with manager.session_scope() as session:
                session.add(Dataset(name="sales"))
        finally:
            manager.close()

        assert (tmp_path / "metadata.db").exists()

    def test_reset_database_drops_rows(self, manager: ConnectionManager):
        with manager.session_scope() as session:
            session.add(Dataset(name="sales"))

        reset_database(manager.engine)

        with manager.session_scope() as session:
            assert session.scalar(select(func.count()).select_from(Dataset)) == 0
