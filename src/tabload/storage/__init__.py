"""Storage layer for metadata persistence.

This module provides:
- Base: SQLAlchemy declarative base for all models
- Dataset, FileUpload, ColumnNode, ...: metadata models
- init_database, reset_database: Schema management
- SqlMetadataStore: the pipeline's metadata store
"""

from tabload.storage.base import (
    Base,
    init_database,
    metadata_obj,
    reset_database,
)
from tabload.storage.metadata_store import SqlMetadataStore
from tabload.storage.models import (
    ColumnNode,
    Dataset,
    DatasetTable,
    FileUpload,
    FileUploadError,
    IngestionRun,
    StageCheckpoint,
)

__all__ = [
    # Base and metadata
    "Base",
    "metadata_obj",
    # Models
    "ColumnNode",
    "Dataset",
    "DatasetTable",
    "FileUpload",
    "FileUploadError",
    "IngestionRun",
    "StageCheckpoint",
    # Database management
    "init_database",
    "reset_database",
    # Store
    "SqlMetadataStore",
]
