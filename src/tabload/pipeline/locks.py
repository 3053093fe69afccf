"""Per-dataset advisory locks."""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager


class DatasetLocks:
    """In-process mutual exclusion scoped to one dataset.

    Jobs for different datasets never wait on each other. Locks are dropped
    once no job holds or waits for them.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}

    @contextmanager
    def hold(self, dataset_id: str) -> Generator[None]:
        with self._guard:
            lock = self._locks.setdefault(dataset_id, threading.Lock())
            self._users[dataset_id] = self._users.get(dataset_id, 0) + 1

        try:
            with lock:
                yield
        finally:
            with self._guard:
                self._users[dataset_id] -= 1
                if self._users[dataset_id] == 0:
                    del self._users[dataset_id]
                    del self._locks[dataset_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)
