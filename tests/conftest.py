"""Shared pytest fixtures for all tests."""

from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from tabload.core.connections import ConnectionConfig, ConnectionManager
from tabload.datastores import DuckDBTargets
from tabload.storage.metadata_store import SqlMetadataStore


@pytest.fixture
def manager() -> Generator[ConnectionManager]:
    """Create an in-memory metadata database for testing.

    Creates a fresh database for each test function.
    """
    manager = ConnectionManager(ConnectionConfig.in_memory())
    manager.initialize()
    yield manager
    manager.close()


@pytest.fixture
def store(manager: ConnectionManager) -> SqlMetadataStore:
    return SqlMetadataStore(manager)


@pytest.fixture
def targets(tmp_path: Path) -> DuckDBTargets:
    """Two storage targets backed by DuckDB files under tmp_path."""
    return DuckDBTargets(
        paths={
            "primary": tmp_path / "storage" / "primary.duckdb",
            "secondary": tmp_path / "storage" / "secondary.duckdb",
        }
    )


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing CSV text to a file under tmp_path."""

    def _write(content: str, name: str = "data.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write
