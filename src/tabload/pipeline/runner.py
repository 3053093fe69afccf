"""Wiring of the ingestion pipeline from settings.

Builds the shipped collaborators (SQL metadata store, CSV reader and
validator, DuckDB storage targets, logging notifier) and accepts uploads.

Usage:
    with IngestionRuntime.from_settings() as runtime:
        upload, job_id = runtime.ingest(Path("sales.csv"), name="sales")
        result = runtime.queue.result(job_id)
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any

from tabload.core.config import Settings, get_settings
from tabload.core.connections import ConnectionConfig, ConnectionManager
from tabload.core.errors import MetadataError
from tabload.core.logging import get_logger
from tabload.core.models import IngestionJob, IngestionMode
from tabload.datastores import DuckDBStorageClient, DuckDBStorageDiscovery, DuckDBTargets
from tabload.notifications import LoggingNotifier
from tabload.pipeline.locks import DatasetLocks
from tabload.pipeline.orchestrator import IngestionPipeline
from tabload.pipeline.queue import IngestionQueue
from tabload.sources import resolve_file_type
from tabload.sources.csv import CSVRowSource, CSVValidator
from tabload.storage.metadata_store import SqlMetadataStore
from tabload.storage.models import FileUpload

logger = get_logger(__name__)


def build_pipeline(
    store: SqlMetadataStore,
    targets: DuckDBTargets,
    settings: Settings,
    notifier: LoggingNotifier | None = None,
) -> IngestionPipeline:
    """Assemble an IngestionPipeline over the shipped collaborators."""
    return IngestionPipeline(
        store=store,
        validator=CSVValidator(delimiter=settings.csv_delimiter, encoding=settings.csv_encoding),
        row_source_factory=partial(
            CSVRowSource, delimiter=settings.csv_delimiter, encoding=settings.csv_encoding
        ),
        discovery=DuckDBStorageDiscovery(targets),
        storage=DuckDBStorageClient(
            targets, delimiter=settings.csv_delimiter, encoding=settings.csv_encoding
        ),
        notifier=notifier or LoggingNotifier(),
        locks=DatasetLocks() if settings.dataset_locking else None,
    )


@dataclass
class IngestionRuntime:
    """Everything needed to accept and run uploads in this process."""

    settings: Settings
    manager: ConnectionManager
    store: SqlMetadataStore
    targets: DuckDBTargets
    pipeline: IngestionPipeline
    queue: IngestionQueue
    notifier: LoggingNotifier = field(default_factory=LoggingNotifier)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> IngestionRuntime:
        settings = settings or get_settings()

        manager = ConnectionManager(ConnectionConfig(database_url=settings.database_url))
        manager.initialize()

        store = SqlMetadataStore(manager)
        targets = DuckDBTargets.from_config(settings.storage_targets_path)
        notifier = LoggingNotifier()
        pipeline = build_pipeline(store, targets, settings, notifier)
        queue = IngestionQueue(pipeline, max_workers=settings.worker_count)

        logger.debug(
            "runtime_ready",
            database_url=settings.database_url,
            targets=targets.ids,
            workers=settings.worker_count,
        )
        return cls(
            settings=settings,
            manager=manager,
            store=store,
            targets=targets,
            pipeline=pipeline,
            queue=queue,
            notifier=notifier,
        )

    def _stage_file(self, source: Path, file_id: str) -> Path:
        """Copy an accepted file into the upload directory."""
        self.settings.upload_dir.mkdir(parents=True, exist_ok=True)
        destination = self.settings.upload_dir / f"{file_id}{source.suffix.lower()}"
        shutil.copyfile(source, destination)
        return destination.resolve()

    def ingest(
        self,
        source: Path,
        name: str | None = None,
        user_ref: str | None = None,
        dataset_id: str | None = None,
        mode: IngestionMode = IngestionMode.CREATE,
    ) -> tuple[FileUpload, str]:
        """Register a new upload and submit its ingestion job.

        A new dataset is created unless ``dataset_id`` is given; appends
        require an existing dataset.

        Returns:
            (upload record, job id)
        """
        if mode == IngestionMode.APPEND and dataset_id is None:
            raise MetadataError("append requires an existing dataset")
        resolve_file_type(source)

        upload = self.store.register_upload(
            name=name or source.stem,
            location=source,
            user_ref=user_ref,
            dataset_id=dataset_id,
        )
        staged = self._stage_file(source, upload.file_id)
        upload = self.store.replace_upload(upload.file_id, staged)

        job = IngestionJob(
            file_id=upload.file_id,
            dataset_id=upload.dataset_id,
            source_path=staged,
            mode=mode,
            user_ref=user_ref,
            name=upload.name,
        )
        return upload, self.queue.submit(job)

    def reingest(
        self,
        file_id: str,
        source: Path | None = None,
        user_ref: str | None = None,
    ) -> str:
        """Run an existing upload again, optionally with a new file.

        Stored findings are reset; schema and table identity are reused.
        """
        upload = self.store.get_upload(file_id)
        if upload is None:
            raise MetadataError(f"unknown file upload: {file_id}")

        location = self._stage_file(source, file_id) if source is not None else None
        upload = self.store.replace_upload(file_id, location)

        job = IngestionJob(
            file_id=upload.file_id,
            dataset_id=upload.dataset_id,
            source_path=Path(upload.location),
            mode=IngestionMode.CREATE,
            user_ref=user_ref,
            name=upload.name,
        )
        return self.queue.submit(job)

    def close(self) -> None:
        self.queue.shutdown(wait=True)
        self.manager.close()

    def __enter__(self) -> IngestionRuntime:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
