"""Pipeline test fixtures.

In-memory collaborators for IngestionPipeline; each records what the
pipeline asked of it.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from tabload.core.errors import MetadataError
from tabload.core.models import (
    ColumnSchema,
    IngestionJob,
    IngestionMode,
    JobStatus,
    StorageTarget,
    TableHandle,
)
from tabload.pipeline import IngestionPipeline
from tabload.sources.csv import CSVRowSource


class FakeStore:
    """Metadata store keeping one dataset in memory."""

    def __init__(self) -> None:
        self.statuses: list[JobStatus] = []
        self.columns: list[ColumnSchema] = []
        self.table: TableHandle | None = None
        self.table_created = False
        self.row_errors: list[str] = ["Record #9 has error: from an earlier run"]
        self.create_calls = 0
        self.fail_on_status: set[JobStatus] = set()

    @property
    def status(self) -> JobStatus | None:
        return self.statuses[-1] if self.statuses else None

    def load_columns(self, job):
        return [c.model_copy() for c in self.columns]

    def save_columns(self, job, columns):
        self.columns = [c.model_copy() for c in columns]
        return self.load_columns(job)

    def load_table(self, job):
        if self.table is None:
            return None
        return TableHandle(self.table.table_uid, self.table.storage_target_id)

    def create_table_if_absent(self, job, table):
        self.create_calls += 1
        if self.table is not None:
            return self.load_table(job)
        self.table = table
        return TableHandle(table.table_uid, table.storage_target_id, created=True)

    def set_column_parent(self, job, table_uid):
        for column in self.columns:
            column.parent_uid = table_uid

    def delete_row_errors(self, job):
        self.row_errors = []

    def save_row_errors(self, job, errors):
        self.row_errors.extend(errors)

    def update_status(self, job, status):
        if status in self.fail_on_status:
            raise MetadataError(f"cannot write {status.value}")
        self.statuses.append(status)

    def is_table_created(self, job):
        return self.table_created

    def mark_table_created(self, job, storage_target_id):
        self.table_created = True


class FakeValidator:
    def __init__(self, findings: list[str] | None = None, error: Exception | None = None):
        self.findings = findings or []
        self.error = error
        self.calls: list[Path] = []

    def validate(self, path):
        self.calls.append(path)
        if self.error is not None:
            raise self.error
        return list(self.findings)


class FakeDiscovery:
    def __init__(self, candidates: list[StorageTarget] | None = None):
        if candidates is None:
            candidates = [
                StorageTarget(id="primary", current_dataset_count=4),
                StorageTarget(id="secondary", current_dataset_count=1),
            ]
        self.candidates = candidates

    def list_candidates(self):
        return list(self.candidates)


class FakeStorage:
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.loads: list[dict] = []
        self.deleted: list[TableHandle] = []

    def bulk_load(self, source_path, table, columns, *, append, create_table):
        if self.error is not None:
            raise self.error
        self.loads.append(
            {
                "path": source_path,
                "table": table,
                "columns": list(columns),
                "append": append,
                "create_table": create_table,
            }
        )
        return 3

    def delete_table(self, table):
        self.deleted.append(table)


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.refreshed: list[str | None] = []
        self.info: list[str] = []
        self.errors: list[str] = []

    def refresh_index(self, user_ref):
        if self.fail:
            raise ConnectionError("index service unavailable")
        self.refreshed.append(user_ref)

    def send_info(self, user_ref, message):
        if self.fail:
            raise ConnectionError("websocket closed")
        self.info.append(message)

    def send_error(self, user_ref, message):
        if self.fail:
            raise ConnectionError("websocket closed")
        self.errors.append(message)


@dataclass
class Collaborators:
    store: FakeStore = field(default_factory=FakeStore)
    validator: FakeValidator = field(default_factory=FakeValidator)
    discovery: FakeDiscovery = field(default_factory=FakeDiscovery)
    storage: FakeStorage = field(default_factory=FakeStorage)
    notifier: FakeNotifier = field(default_factory=FakeNotifier)

    def pipeline(self) -> IngestionPipeline:
        return IngestionPipeline(
            store=self.store,
            validator=self.validator,
            row_source_factory=CSVRowSource,
            discovery=self.discovery,
            storage=self.storage,
            notifier=self.notifier,
        )


@pytest.fixture
def fakes() -> Collaborators:
    return Collaborators()


@pytest.fixture
def make_job(write_csv) -> Callable[..., IngestionJob]:
    """Factory for jobs over a CSV file written to tmp_path."""

    def _make(
        content: str = "id,amount\n1,2.5\n2,3\n",
        mode: IngestionMode = IngestionMode.CREATE,
        name: str = "data.csv",
    ) -> IngestionJob:
        return IngestionJob(
            file_id="file-1",
            dataset_id="dataset-1",
            source_path=write_csv(content, name=name),
            mode=mode,
            user_ref="alice",
        )

    return _make

