"""Ingestion pipeline.

Usage:
    from tabload.pipeline import IngestionPipeline, IngestionQueue

    pipeline = IngestionPipeline(store=..., validator=..., ...)
    queue = IngestionQueue(pipeline, max_workers=4)
    job_id = queue.submit(job)
    result = queue.result(job_id)
"""

from tabload.pipeline.base import (
    INGESTION_STAGES,
    JobRunResult,
    StageContext,
    StageDefinition,
    StageResult,
    StageStatus,
)
from tabload.pipeline.locks import DatasetLocks
from tabload.pipeline.maintenance import delete_dataset
from tabload.pipeline.orchestrator import IngestionPipeline, default_stages
from tabload.pipeline.queue import IngestionQueue

__all__ = [
    # Base types
    "INGESTION_STAGES",
    "JobRunResult",
    "StageContext",
    "StageDefinition",
    "StageResult",
    "StageStatus",
    # Orchestration
    "DatasetLocks",
    "IngestionPipeline",
    "IngestionQueue",
    "default_stages",
    # Maintenance
    "delete_dataset",
]
