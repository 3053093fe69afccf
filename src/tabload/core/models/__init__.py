"""Shared data model."""

from tabload.core.models.base import (
    AggregationFn,
    ColumnSchema,
    DataType,
    IngestionJob,
    IngestionMode,
    JobStatus,
    StorageTarget,
    TableHandle,
    aggregation_for,
    new_uid,
)

__all__ = [
    # Enums
    "AggregationFn",
    "DataType",
    "IngestionMode",
    "JobStatus",
    # Models
    "ColumnSchema",
    "IngestionJob",
    "StorageTarget",
    "TableHandle",
    # Helpers
    "aggregation_for",
    "new_uid",
]
