"""Registry of DuckDB storage targets.

Each storage target is a DuckDB database file. Access to a target is
serialized by a per-target lock; DuckDB allows a single writer per file.
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from tabload.core.config import load_storage_targets
from tabload.core.errors import StorageError
from tabload.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class DuckDBTargets:
    """Known storage targets, keyed by id."""

    paths: dict[str, Path] = field(default_factory=dict)
    _locks: dict[str, threading.Lock] = field(default_factory=dict, init=False, repr=False)
    _registry_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    @classmethod
    def from_config(cls, path: Path | None = None) -> DuckDBTargets:
        """Build the registry from the storage targets YAML file."""
        definitions = load_storage_targets(path)
        return cls.from_definitions(definitions)

    @classmethod
    def from_definitions(cls, definitions: list[dict[str, Any]]) -> DuckDBTargets:
        return cls(paths={d["id"]: Path(d["path"]) for d in definitions})

    @property
    def ids(self) -> list[str]:
        return list(self.paths)

    def path_for(self, target_id: str) -> Path:
        try:
            return self.paths[target_id]
        except KeyError:
            raise StorageError(f"unknown storage target: {target_id}") from None

    def _lock_for(self, target_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(target_id)
            if lock is None:
                lock = self._locks[target_id] = threading.Lock()
            return lock

    @contextmanager
    def connect(self, target_id: str) -> Generator[duckdb.DuckDBPyConnection]:
        """Exclusive connection to a target's database file.

        Raises:
            StorageError: Unknown target or the database cannot be opened
        """
        path = self.path_for(target_id)
        with self._lock_for(target_id):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                conn = duckdb.connect(str(path))
            except (duckdb.Error, OSError) as e:
                raise StorageError(f"cannot open storage target {target_id}: {e}") from e
            try:
                yield conn
            finally:
                conn.close()
