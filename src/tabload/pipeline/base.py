"""Pipeline base types.

Defines the stage result and context types used by the orchestrator and the
static definition of the ingestion stages.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from tabload.core.errors import StageFailed
from tabload.core.models import IngestionJob, JobStatus

if TYPE_CHECKING:
    from tabload.pipeline.interfaces import (
        FileValidator,
        MetadataStore,
        Notifier,
        RowSourceFactory,
        StorageClient,
        StorageDiscovery,
    )


class StageStatus(str, Enum):
    """Status of a pipeline stage."""

    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class StageContext:
    """Context passed to each stage.

    Carries the job and the collaborators. Stages read the persisted state
    they need from the metadata store instead of from earlier stages.
    """

    job: IngestionJob
    store: MetadataStore
    validator: FileValidator
    row_source_factory: RowSourceFactory
    discovery: StorageDiscovery
    storage: StorageClient
    notifier: Notifier

    # Outputs from earlier stages of this run (keyed by stage name), for reporting only
    previous_outputs: dict[str, dict[str, Any]] = field(default_factory=dict)


@dataclass
class StageResult:
    """Result from a stage execution."""

    status: StageStatus
    outputs: dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    error: str | None = None
    exception: BaseException | None = field(default=None, repr=False)
    warnings: list[str] = field(default_factory=list)

    records_processed: int = 0

    @classmethod
    def success(
        cls,
        outputs: dict[str, Any] | None = None,
        duration: float = 0.0,
        records_processed: int = 0,
        warnings: list[str] | None = None,
    ) -> StageResult:
        """Create a successful result."""
        return cls(
            status=StageStatus.COMPLETED,
            outputs=outputs or {},
            duration_seconds=duration,
            records_processed=records_processed,
            warnings=warnings or [],
        )

    @classmethod
    def failed(
        cls,
        error: str,
        duration: float = 0.0,
        exception: BaseException | None = None,
    ) -> StageResult:
        """Create a failed result."""
        return cls(
            status=StageStatus.FAILED,
            error=error,
            duration_seconds=duration,
            exception=exception,
        )

    @classmethod
    def skipped(cls, reason: str) -> StageResult:
        """Create a skipped result."""
        return cls(
            status=StageStatus.SKIPPED,
            error=reason,
        )


@dataclass
class StageDefinition:
    """Static definition of a stage.

    ``running_status`` is written when the stage starts (if set),
    ``success_status`` when it completes and ``error_status`` when it fails.
    """

    name: str
    description: str
    running_status: JobStatus | None = None
    success_status: JobStatus | None = None
    error_status: JobStatus | None = None
    best_effort: bool = False


# Stages run strictly in this order; the first failure halts the run
INGESTION_STAGES: list[StageDefinition] = [
    StageDefinition(
        name="validate",
        description="Validate the file and store row-level findings",
        running_status=JobStatus.VALIDATING,
        success_status=JobStatus.VALIDATED,
        error_status=JobStatus.VALIDATION_ERROR,
    ),
    StageDefinition(
        name="infer_schema",
        description="Infer column types and persist the schema",
        success_status=JobStatus.SCHEMA_INFERRED,
        error_status=JobStatus.SCHEMA_ERROR,
    ),
    StageDefinition(
        name="materialize_table",
        description="Select a storage target and bind a table to the dataset",
        running_status=JobStatus.UPLOADING,
        error_status=JobStatus.UPLOAD_ERROR,
    ),
    StageDefinition(
        name="load_data",
        description="Bulk load the file into the dataset's table",
        success_status=JobStatus.COMPLETED,
        error_status=JobStatus.UPLOAD_ERROR,
    ),
    StageDefinition(
        name="notify",
        description="Ask the index service to refresh the user's schema",
        best_effort=True,
    ),
]


def get_stage_definition(name: str) -> StageDefinition | None:
    """Get a stage definition by name."""
    for stage in INGESTION_STAGES:
        if stage.name == name:
            return stage
    return None


@dataclass
class JobRunResult:
    """Outcome of one ingestion job."""

    job_id: str
    status: JobStatus
    results: dict[str, StageResult] = field(default_factory=dict)
    failed_stage: str | None = None
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.failed_stage is None

    @property
    def error(self) -> str | None:
        if self.failed_stage is None:
            return None
        return self.results[self.failed_stage].error

    def raise_for_status(self) -> None:
        """Raise StageFailed if a stage failed."""
        if self.failed_stage is None:
            return
        result = self.results[self.failed_stage]
        cause = result.exception or result.error or "unknown error"
        raise StageFailed(self.failed_stage, cause)
