"""Thread-safe connection management for the SQLAlchemy metadata store.

Usage:
    from tabload.core.connections import ConnectionManager, ConnectionConfig

    config = ConnectionConfig.for_directory(Path("./output"))
    manager = ConnectionManager(config)
    manager.initialize()

    with manager.session_scope() as session:
        # Use session...

    manager.close()
"""

from __future__ import annotations

import threading
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tabload.storage.base import init_database


@dataclass
class ConnectionConfig:
    """Connection configuration for the metadata store.

    Attributes:
        database_url: SQLAlchemy URL of the metadata database
        sqlite_timeout: SQLite busy timeout in seconds
        echo_sql: Whether to echo SQL statements (for debugging)
    """

    database_url: str
    sqlite_timeout: float = 30.0
    echo_sql: bool = False

    @classmethod
    def for_directory(cls, output_dir: Path, **kwargs: Any) -> ConnectionConfig:
        """Create config for a SQLite file inside ``output_dir``."""
        output_dir.mkdir(parents=True, exist_ok=True)
        return cls(database_url=f"sqlite:///{output_dir / 'metadata.db'}", **kwargs)

    @classmethod
    def in_memory(cls, **kwargs: Any) -> ConnectionConfig:
        """Create config for an in-memory database (useful for testing)."""
        return cls(database_url="sqlite://", **kwargs)

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_memory(self) -> bool:
        return self.database_url in ("sqlite://", "sqlite:///:memory:")


@dataclass
class ConnectionManager:
    """Thread-safe session management for the metadata store.

    Every caller gets its own session from ``session_scope()``; sessions are
    never shared between threads.
    """

    config: ConnectionConfig
    _engine: Engine | None = field(default=None, init=False, repr=False)
    _session_factory: sessionmaker[Session] | None = field(default=None, init=False, repr=False)
    _initialized: bool = field(default=False, init=False, repr=False)
    _init_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def initialize(self) -> None:
        """Create the engine and the schema.

        Safe to call multiple times (idempotent).

        Raises:
            RuntimeError: If initialization fails
        """
        with self._init_lock:
            if self._initialized:
                return

            try:
                self._init_sqlalchemy()
                self._initialized = True
            except Exception as e:
                self.close()
                raise RuntimeError(f"Failed to initialize connections: {e}") from e

    def _init_sqlalchemy(self) -> None:
        kwargs: dict[str, Any] = {"echo": self.config.echo_sql}
        if self.config.is_memory:
            # One shared connection so every thread sees the same in-memory database
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        elif self.config.is_sqlite:
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": self.config.sqlite_timeout,
            }

        self._engine = create_engine(self.config.database_url, **kwargs)

        if self.config.is_sqlite:
            is_memory = self.config.is_memory

            @event.listens_for(self._engine, "connect")
            def configure_sqlite(dbapi_conn: Any, connection_record: Any) -> None:
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                if not is_memory:
                    # WAL lets readers proceed while a worker writes
                    cursor.execute("PRAGMA journal_mode=WAL")
                    cursor.execute("PRAGMA synchronous=NORMAL")
                cursor.close()

        init_database(self._engine)

        self._session_factory = sessionmaker(self._engine, expire_on_commit=False)

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "ConnectionManager not initialized. Call manager.initialize() first."
            )

    @contextmanager
    def session_scope(self) -> Generator[Session]:
        """Get a session with automatic commit/rollback.

        Example:
            with manager.session_scope() as session:
                result = session.execute(select(Dataset))
        """
        self._ensure_initialized()
        assert self._session_factory is not None

        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    @property
    def engine(self) -> Engine:
        self._ensure_initialized()
        assert self._engine is not None
        return self._engine

    def close(self) -> None:
        """Dispose of the engine. Safe to call multiple times."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None

        self._session_factory = None
        self._initialized = False


__all__ = [
    "ConnectionConfig",
    "ConnectionManager",
]
