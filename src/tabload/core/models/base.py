"""Base models and types used across all modules.

This module contains the fundamental types shared by type inference, the
storage layer and the ingestion pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

# === Enums ===


class DataType(str, Enum):
    """Column types the inference engine can assign."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    DATE = "date"

    @property
    def is_numeric(self) -> bool:
        return self in (DataType.INT, DataType.FLOAT)


class AggregationFn(str, Enum):
    """Default aggregation applied to a column."""

    SUM = "sum"
    COUNT = "count"


class IngestionMode(str, Enum):
    """How a file is applied to its dataset."""

    CREATE = "create"  # infer schema, replace data
    APPEND = "append"  # reuse schema and table, append rows


class JobStatus(str, Enum):
    """Status of a file upload as it moves through the pipeline."""

    UPLOADED = "UPLOADED"
    VALIDATING = "VALIDATING"
    VALIDATED = "VALIDATED"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    SCHEMA_INFERRED = "SCHEMA_INFERRED"
    SCHEMA_ERROR = "SCHEMA_ERROR"
    UPLOADING = "UPLOADING"
    COMPLETED = "COMPLETED"
    UPLOAD_ERROR = "UPLOAD_ERROR"

    @property
    def is_error(self) -> bool:
        return self in (
            JobStatus.VALIDATION_ERROR,
            JobStatus.SCHEMA_ERROR,
            JobStatus.UPLOAD_ERROR,
        )


def aggregation_for(data_type: DataType) -> AggregationFn:
    """Numeric columns are summed, everything else is counted."""
    return AggregationFn.SUM if data_type.is_numeric else AggregationFn.COUNT


def new_uid() -> str:
    return str(uuid4())


# === Schema ===


class ColumnSchema(BaseModel):
    """One inferred column of a dataset.

    ``uid`` survives re-inference across runs; ``name`` is the positional index
    unless a user renamed the column. ``date_format`` is only set for DATE
    columns and holds the reference layout the values matched.
    """

    model_config = ConfigDict(validate_assignment=True)

    uid: str = Field(default_factory=new_uid)
    name: str
    position: int = 0
    raw_sample: str = ""
    data_type: DataType = DataType.STRING
    date_format: str | None = None
    aggregation_fn: AggregationFn = AggregationFn.COUNT
    parent_uid: str | None = None  # table identity the column is bound to


class StorageTarget(BaseModel):
    """A storage backend candidate, as reported by discovery."""

    model_config = ConfigDict(frozen=True)

    id: str
    current_dataset_count: int = 0
    connection_info: dict[str, Any] = Field(default_factory=dict)


@dataclass
class TableHandle:
    """Binds a dataset to a table on a storage target."""

    table_uid: str
    storage_target_id: str
    created: bool = False

    @property
    def table_name(self) -> str:
        return f"table_{self.table_uid}"


@dataclass
class IngestionJob:
    """One file-to-storage pipeline run.

    Lives only for the duration of the run; status is mirrored into the
    metadata store.
    """

    file_id: str
    dataset_id: str
    source_path: Path
    mode: IngestionMode = IngestionMode.CREATE
    user_ref: str | None = None
    name: str | None = None
    job_id: str = field(default_factory=new_uid)

    @property
    def append(self) -> bool:
        return self.mode == IngestionMode.APPEND

    @property
    def display_name(self) -> str:
        """Upload name shown to users; falls back to the file name."""
        return self.name or self.source_path.name
