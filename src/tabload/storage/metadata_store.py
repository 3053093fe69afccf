"""SQLAlchemy-backed metadata store.

Every call runs in its own session from ConnectionManager.session_scope(), so
a store instance can be shared by all ingestion workers. Database failures
surface as MetadataError.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from tabload.core.errors import MetadataError
from tabload.core.logging import get_logger, increment_db_query, increment_db_write
from tabload.core.models import (
    AggregationFn,
    ColumnSchema,
    DataType,
    IngestionJob,
    JobStatus,
    TableHandle,
)
from tabload.sources import resolve_file_type
from tabload.storage.models import (
    ColumnNode,
    Dataset,
    DatasetTable,
    FileUpload,
    FileUploadError,
    IngestionRun,
    StageCheckpoint,
)

if TYPE_CHECKING:
    from tabload.core.connections import ConnectionManager

logger = get_logger(__name__)


def _to_schema(node: ColumnNode) -> ColumnSchema:
    return ColumnSchema(
        uid=node.column_uid,
        name=node.name,
        position=node.position,
        raw_sample=node.raw_sample,
        data_type=DataType(node.data_type),
        date_format=node.date_format,
        aggregation_fn=AggregationFn(node.aggregation_fn),
        parent_uid=node.parent_uid,
    )


def _apply_schema(node: ColumnNode, column: ColumnSchema) -> None:
    node.name = column.name
    node.position = column.position
    node.raw_sample = column.raw_sample
    node.data_type = column.data_type.value
    node.date_format = column.date_format
    node.aggregation_fn = column.aggregation_fn.value
    node.parent_uid = column.parent_uid


class SqlMetadataStore:
    """Metadata store over the tabload SQLAlchemy models."""

    def __init__(self, manager: ConnectionManager):
        self.manager = manager

    @contextmanager
    def _session(self, operation: str) -> Generator[Session]:
        try:
            with self.manager.session_scope() as session:
                yield session
        except SQLAlchemyError as e:
            raise MetadataError(f"{operation} failed: {e}") from e

    # ------------------------------------------------------------------
    # Columns
    # ------------------------------------------------------------------

    def load_columns(self, job: IngestionJob) -> list[ColumnSchema]:
        with self._session("load columns") as session:
            stmt = (
                select(ColumnNode)
                .where(ColumnNode.dataset_id == job.dataset_id)
                .order_by(ColumnNode.position)
            )
            nodes = session.execute(stmt).scalars().all()
            increment_db_query()
            return [_to_schema(node) for node in nodes]

    def save_columns(
        self, job: IngestionJob, columns: Sequence[ColumnSchema]
    ) -> list[ColumnSchema]:
        """Create columns whose uid is unknown, update the others in place."""
        created = 0
        with self._session("save columns") as session:
            for column in columns:
                node = session.get(ColumnNode, column.uid)
                if node is None:
                    node = ColumnNode(column_uid=column.uid, dataset_id=job.dataset_id)
                    session.add(node)
                    created += 1
                elif node.dataset_id != job.dataset_id:
                    raise MetadataError(
                        f"column {column.uid} belongs to dataset {node.dataset_id}"
                    )
                _apply_schema(node, column)
                increment_db_write()

        logger.debug(
            "columns_saved",
            dataset_id=job.dataset_id,
            created=created,
            updated=len(columns) - created,
        )
        return self.load_columns(job)

    def set_column_parent(self, job: IngestionJob, table_uid: str) -> None:
        with self._session("set column parent") as session:
            session.execute(
                update(ColumnNode)
                .where(ColumnNode.dataset_id == job.dataset_id)
                .values(parent_uid=table_uid)
            )
            increment_db_write()

    # ------------------------------------------------------------------
    # Table identity
    # ------------------------------------------------------------------

    def load_table(self, job: IngestionJob) -> TableHandle | None:
        with self._session("load table") as session:
            row = session.execute(
                select(DatasetTable).where(DatasetTable.dataset_id == job.dataset_id)
            ).scalar_one_or_none()
            increment_db_query()
            if row is None:
                return None
            return TableHandle(
                table_uid=row.table_uid,
                storage_target_id=row.storage_target_id,
                created=False,
            )

    def create_table_if_absent(self, job: IngestionJob, table: TableHandle) -> TableHandle:
        """Bind a table identity to the dataset unless one is already bound.

        The unique dataset_id on dataset_tables makes this a compare-and-set:
        when a concurrent run won, its handle is returned with ``created`` False.
        """
        try:
            with self.manager.session_scope() as session:
                session.add(
                    DatasetTable(
                        table_uid=table.table_uid,
                        dataset_id=job.dataset_id,
                        storage_target_id=table.storage_target_id,
                    )
                )
                session.flush()
                increment_db_write()
        except IntegrityError as e:
            existing = self.load_table(job)
            if existing is None:
                raise MetadataError(f"cannot create table for {job.dataset_id}: {e}") from e
            logger.info(
                "table_already_bound",
                dataset_id=job.dataset_id,
                table_uid=existing.table_uid,
            )
            return existing
        except SQLAlchemyError as e:
            raise MetadataError(f"create table failed: {e}") from e

        return TableHandle(
            table_uid=table.table_uid,
            storage_target_id=table.storage_target_id,
            created=True,
        )

    def is_table_created(self, job: IngestionJob) -> bool:
        dataset = self._get_dataset(job.dataset_id, "read table marker")
        return dataset.table_created

    def mark_table_created(self, job: IngestionJob, storage_target_id: str) -> None:
        with self._session("mark table created") as session:
            session.execute(
                update(Dataset)
                .where(Dataset.dataset_id == job.dataset_id)
                .values(table_created=True, storage_target_id=storage_target_id)
            )
            increment_db_write()

    # ------------------------------------------------------------------
    # Upload status and findings
    # ------------------------------------------------------------------

    def update_status(self, job: IngestionJob, status: JobStatus) -> None:
        with self._session("update status") as session:
            result = session.execute(
                update(FileUpload)
                .where(FileUpload.file_id == job.file_id)
                .values(status=status.value)
            )
            increment_db_write()
            if result.rowcount == 0:
                raise MetadataError(f"unknown file upload: {job.file_id}")

    def delete_row_errors(self, job: IngestionJob) -> None:
        with self._session("delete row errors") as session:
            session.execute(delete(FileUploadError).where(FileUploadError.file_id == job.file_id))
            increment_db_write()

    def save_row_errors(self, job: IngestionJob, errors: Sequence[str]) -> None:
        if not errors:
            return
        with self._session("save row errors") as session:
            session.add_all(
                FileUploadError(file_id=job.file_id, position=position, error=error)
                for position, error in enumerate(errors)
            )
            increment_db_write()

    def get_row_errors(self, file_id: str) -> list[str]:
        with self._session("get row errors") as session:
            stmt = (
                select(FileUploadError.error)
                .where(FileUploadError.file_id == file_id)
                .order_by(FileUploadError.position)
            )
            return list(session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Uploads and datasets
    # ------------------------------------------------------------------

    def register_upload(
        self,
        name: str,
        location: str | Path,
        user_ref: str | None = None,
        description: str | None = None,
        dataset_id: str | None = None,
    ) -> FileUpload:
        """Record a new upload, in one transaction with the dataset it creates.

        With ``dataset_id`` the upload is added to an existing dataset (append).

        Raises:
            UnsupportedFormat: The file is not a supported tabular format
            MetadataError: ``dataset_id`` does not exist
        """
        file_type = resolve_file_type(location)
        with self._session("register upload") as session:
            if dataset_id is None:
                dataset = Dataset(name=name, description=description, user_ref=user_ref)
                session.add(dataset)
                session.flush()
            else:
                existing = session.get(Dataset, dataset_id)
                if existing is None:
                    raise MetadataError(f"unknown dataset: {dataset_id}")
                dataset = existing

            upload = FileUpload(
                dataset_id=dataset.dataset_id,
                name=name,
                location=str(location),
                file_type=file_type,
                status=JobStatus.UPLOADED.value,
            )
            session.add(upload)
            session.flush()
            increment_db_write()

        logger.info("upload_registered", file_id=upload.file_id, dataset_id=dataset.dataset_id)
        return upload

    def replace_upload(self, file_id: str, location: str | Path | None = None) -> FileUpload:
        """Reset an upload before it is ingested again.

        Stored findings are dropped and the status returns to UPLOADED.
        """
        if location is not None:
            resolve_file_type(location)
        with self._session("replace upload") as session:
            upload = session.get(FileUpload, file_id)
            if upload is None:
                raise MetadataError(f"unknown file upload: {file_id}")
            session.execute(delete(FileUploadError).where(FileUploadError.file_id == file_id))
            if location is not None:
                upload.location = str(location)
            upload.status = JobStatus.UPLOADED.value
            increment_db_write()
        return upload

    def get_upload(self, file_id: str) -> FileUpload | None:
        with self._session("get upload") as session:
            return session.get(FileUpload, file_id)

    def list_uploads(self, dataset_id: str | None = None) -> list[FileUpload]:
        with self._session("list uploads") as session:
            stmt = select(FileUpload).order_by(FileUpload.created_at)
            if dataset_id is not None:
                stmt = stmt.where(FileUpload.dataset_id == dataset_id)
            return list(session.execute(stmt).scalars().all())

    def get_dataset(self, dataset_id: str) -> Dataset | None:
        with self._session("get dataset") as session:
            return session.get(Dataset, dataset_id)

    def _get_dataset(self, dataset_id: str, operation: str) -> Dataset:
        dataset = self.get_dataset(dataset_id)
        if dataset is None:
            raise MetadataError(f"{operation} failed: unknown dataset {dataset_id}")
        return dataset

    def get_dataset_table(self, dataset_id: str) -> TableHandle | None:
        with self._session("get dataset table") as session:
            row = session.execute(
                select(DatasetTable).where(DatasetTable.dataset_id == dataset_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return TableHandle(table_uid=row.table_uid, storage_target_id=row.storage_target_id)

    def delete_dataset(self, dataset_id: str) -> bool:
        """Remove a dataset with its uploads, findings, columns, table identity and runs.

        Returns:
            False if the dataset did not exist
        """
        with self._session("delete dataset") as session:
            dataset = session.get(Dataset, dataset_id)
            if dataset is None:
                return False
            session.execute(delete(IngestionRun).where(IngestionRun.dataset_id == dataset_id))
            session.delete(dataset)
            increment_db_write()
        logger.info("dataset_metadata_deleted", dataset_id=dataset_id)
        return True

    # ------------------------------------------------------------------
    # Run history
    # ------------------------------------------------------------------

    def start_run(self, job: IngestionJob) -> None:
        with self._session("start run") as session:
            session.add(
                IngestionRun(
                    job_id=job.job_id,
                    file_id=job.file_id,
                    dataset_id=job.dataset_id,
                    mode=job.mode.value,
                )
            )

    def record_stage(
        self,
        job_id: str,
        stage_name: str,
        status: str,
        duration_seconds: float = 0.0,
        outputs: dict[str, Any] | None = None,
        error: str | None = None,
        warnings: list[str] | None = None,
    ) -> None:
        with self._session("record stage") as session:
            session.add(
                StageCheckpoint(
                    job_id=job_id,
                    stage_name=stage_name,
                    status=status,
                    duration_seconds=duration_seconds,
                    outputs=outputs,
                    error=error,
                    warnings=warnings,
                )
            )

    def finish_run(
        self,
        job_id: str,
        status: str,
        duration_seconds: float,
        rows_processed: int = 0,
        failed_stage: str | None = None,
        error: str | None = None,
    ) -> None:
        with self._session("finish run") as session:
            session.execute(
                update(IngestionRun)
                .where(IngestionRun.job_id == job_id)
                .values(
                    status=status,
                    failed_stage=failed_stage,
                    error=error,
                    completed_at=datetime.now(UTC),
                    total_duration_seconds=duration_seconds,
                    rows_processed=rows_processed,
                )
            )

    def get_runs(self, file_id: str) -> list[IngestionRun]:
        """Runs for an upload, newest first, with their stage checkpoints loaded."""
        with self._session("get runs") as session:
            stmt = (
                select(IngestionRun)
                .where(IngestionRun.file_id == file_id)
                .order_by(IngestionRun.started_at.desc())
                .options(selectinload(IngestionRun.checkpoints))
            )
            return list(session.execute(stmt).scalars().all())
