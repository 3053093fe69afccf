"""SQLAlchemy models for metadata storage.

Note: This module defines database models (SQLAlchemy ORM).
For the in-memory data model (Pydantic/dataclasses), see core.models.
"""

from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tabload.storage.base import Base

# ============================================================================
# Datasets and uploads
# ============================================================================


class Dataset(Base):
    """A user dataset backed by an uploaded file."""

    __tablename__ = "datasets"

    dataset_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    name: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    user_ref: Mapped[str | None] = mapped_column(String, index=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="FILE")

    # Set once the first bulk load succeeded
    table_created: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    storage_target_id: Mapped[str | None] = mapped_column(String)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    uploads: Mapped[list[FileUpload]] = relationship(
        back_populates="dataset", cascade="all, delete-orphan"
    )
    columns: Mapped[list[ColumnNode]] = relationship(
        back_populates="dataset", cascade="all, delete-orphan", order_by="ColumnNode.position"
    )
    table: Mapped[DatasetTable | None] = relationship(
        back_populates="dataset", uselist=False, cascade="all, delete-orphan"
    )


class FileUpload(Base):
    """An uploaded file and its pipeline status."""

    __tablename__ = "file_uploads"

    file_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    dataset_id: Mapped[str] = mapped_column(
        ForeignKey("datasets.dataset_id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False)
    file_type: Mapped[str] = mapped_column(String, nullable=False, default="CSV")
    status: Mapped[str] = mapped_column(String, nullable=False, default="UPLOADED")
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    # Relationships
    dataset: Mapped[Dataset] = relationship(back_populates="uploads")
    errors: Mapped[list[FileUploadError]] = relationship(
        back_populates="upload", cascade="all, delete-orphan"
    )


class FileUploadError(Base):
    """A row-level validation finding for an uploaded file."""

    __tablename__ = "file_upload_errors"

    error_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    file_id: Mapped[str] = mapped_column(
        ForeignKey("file_uploads.file_id", ondelete="CASCADE"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    error: Mapped[str] = mapped_column(Text, nullable=False)

    upload: Mapped[FileUpload] = relationship(back_populates="errors")


# ============================================================================
# Schema and table identity
# ============================================================================


class ColumnNode(Base):
    """An inferred column of a dataset. ``column_uid`` is stable across runs."""

    __tablename__ = "columns"

    column_uid: Mapped[str] = mapped_column(String, primary_key=True)
    dataset_id: Mapped[str] = mapped_column(
        ForeignKey("datasets.dataset_id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    raw_sample: Mapped[str] = mapped_column(String, nullable=False, default="")
    data_type: Mapped[str] = mapped_column(String, nullable=False)
    date_format: Mapped[str | None] = mapped_column(String)
    aggregation_fn: Mapped[str] = mapped_column(String, nullable=False)
    parent_uid: Mapped[str | None] = mapped_column(String)

    dataset: Mapped[Dataset] = relationship(back_populates="columns")


Index("idx_columns_dataset", ColumnNode.dataset_id)


class DatasetTable(Base):
    """Table identity of a dataset on a storage target.

    The unique ``dataset_id`` makes table creation a compare-and-set: a second
    concurrent insert for the same dataset fails instead of creating a twin.
    """

    __tablename__ = "dataset_tables"

    table_uid: Mapped[str] = mapped_column(String, primary_key=True)
    dataset_id: Mapped[str] = mapped_column(
        ForeignKey("datasets.dataset_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    storage_target_id: Mapped[str] = mapped_column(String, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )

    dataset: Mapped[Dataset] = relationship(back_populates="table")


# ============================================================================
# Run history
# ============================================================================


class IngestionRun(Base):
    """A single execution of the ingestion pipeline for one file."""

    __tablename__ = "ingestion_runs"

    job_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    file_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    dataset_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    mode: Mapped[str] = mapped_column(String, nullable=False)

    status: Mapped[str] = mapped_column(String, nullable=False, default="running")
    failed_stage: Mapped[str | None] = mapped_column(String)
    error: Mapped[str | None] = mapped_column(Text)
    started_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)
    total_duration_seconds: Mapped[float] = mapped_column(Float, default=0.0)
    rows_processed: Mapped[int] = mapped_column(Integer, default=0)

    checkpoints: Mapped[list[StageCheckpoint]] = relationship(
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="StageCheckpoint.completed_at",
    )


class StageCheckpoint(Base):
    """Outcome of one stage within an ingestion run."""

    __tablename__ = "stage_checkpoints"

    checkpoint_id: Mapped[str] = mapped_column(
        String, primary_key=True, default=lambda: str(uuid4())
    )
    job_id: Mapped[str] = mapped_column(
        ForeignKey("ingestion_runs.job_id", ondelete="CASCADE"), nullable=False, index=True
    )
    stage_name: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False)  # completed, failed, skipped
    completed_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=lambda: datetime.now(UTC)
    )
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    outputs: Mapped[dict | None] = mapped_column(JSON)
    error: Mapped[str | None] = mapped_column(Text)
    warnings: Mapped[list[str] | None] = mapped_column(JSON)

    run: Mapped[IngestionRun] = relationship(back_populates="checkpoints")
