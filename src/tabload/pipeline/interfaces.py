"""Collaborator interfaces used by the ingestion pipeline.

The pipeline only talks to the outside world through these protocols. Concrete
implementations are passed to IngestionPipeline at construction.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from tabload.core.models import (
    ColumnSchema,
    IngestionJob,
    JobStatus,
    StorageTarget,
    TableHandle,
)


class RowSource(Protocol):
    """Forward-only sequence of rows of string fields."""

    def read_header(self) -> list[str]:
        """Read the header row.

        Raises:
            EOFError: The input ended before a header was seen
        """
        ...

    def read_row(self) -> list[str] | None:
        """Read the next row, or None at end of input."""
        ...

    def close(self) -> None: ...


class RowSourceFactory(Protocol):
    """Opens a fresh row source over a file."""

    def __call__(self, path: Path) -> RowSource: ...


class FileValidator(Protocol):
    """Format validator for uploaded files."""

    def validate(self, path: Path) -> list[str]:
        """Return row-level findings (possibly empty).

        Raises on I/O or format-detection failure only.
        """
        ...


class MetadataStore(Protocol):
    """Persistence of dataset, file and schema metadata."""

    def load_columns(self, job: IngestionJob) -> list[ColumnSchema]: ...

    def save_columns(
        self, job: IngestionJob, columns: Sequence[ColumnSchema]
    ) -> list[ColumnSchema]:
        """Create columns with unknown uids, update known ones in place."""
        ...

    def load_table(self, job: IngestionJob) -> TableHandle | None: ...

    def create_table_if_absent(self, job: IngestionJob, table: TableHandle) -> TableHandle:
        """Bind ``table`` to the dataset unless it already has a table.

        Returns the stored handle; ``created`` is False when another table won.
        """
        ...

    def set_column_parent(self, job: IngestionJob, table_uid: str) -> None: ...

    def delete_row_errors(self, job: IngestionJob) -> None: ...

    def save_row_errors(self, job: IngestionJob, errors: Sequence[str]) -> None: ...

    def update_status(self, job: IngestionJob, status: JobStatus) -> None: ...

    def is_table_created(self, job: IngestionJob) -> bool: ...

    def mark_table_created(self, job: IngestionJob, storage_target_id: str) -> None: ...


class StorageDiscovery(Protocol):
    def list_candidates(self) -> list[StorageTarget]: ...


class StorageClient(Protocol):
    def bulk_load(
        self,
        source_path: Path,
        table: TableHandle,
        columns: Sequence[ColumnSchema],
        *,
        append: bool,
        create_table: bool,
    ) -> int | None: ...

    def delete_table(self, table: TableHandle) -> None: ...


class Notifier(Protocol):
    """User-facing notifications. Every call is best-effort."""

    def refresh_index(self, user_ref: str | None) -> None:
        """Ask the index service to reload the user's schema."""
        ...

    def send_info(self, user_ref: str | None, message: str) -> None: ...

    def send_error(self, user_ref: str | None, message: str) -> None: ...


@runtime_checkable
class RunHistory(Protocol):
    """Optional store capability: mirror runs and stage outcomes."""

    def start_run(self, job: IngestionJob) -> None: ...

    def record_stage(
        self,
        job_id: str,
        stage_name: str,
        status: str,
        duration_seconds: float = 0.0,
        outputs: dict[str, Any] | None = None,
        error: str | None = None,
        warnings: list[str] | None = None,
    ) -> None: ...

    def finish_run(
        self,
        job_id: str,
        status: str,
        duration_seconds: float,
        rows_processed: int = 0,
        failed_stage: str | None = None,
        error: str | None = None,
    ) -> None: ...
