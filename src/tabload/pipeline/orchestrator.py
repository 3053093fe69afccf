"""Pipeline orchestrator.

Runs the ingestion stages of one job strictly in order:

    validate -> infer_schema (skipped for appends) -> materialize_table
             -> load_data -> notify

The first failing stage halts the run and leaves its error status on the
upload. There is no automatic retry; re-running a job is safe because every
stage reads persisted state and is idempotent (table existence checks,
finding replacement).
"""

from __future__ import annotations

import time
from contextlib import ExitStack
from dataclasses import dataclass, field
from typing import Any

from tabload.core.logging import (
    end_job_metrics,
    end_stage_metrics,
    get_logger,
    log_context,
    start_job_metrics,
    start_stage_metrics,
)
from tabload.core.models import IngestionJob, JobStatus
from tabload.pipeline.base import (
    JobRunResult,
    StageContext,
    StageDefinition,
    StageResult,
    StageStatus,
    get_stage_definition,
)
from tabload.pipeline.interfaces import (
    FileValidator,
    MetadataStore,
    Notifier,
    RowSourceFactory,
    RunHistory,
    StorageClient,
    StorageDiscovery,
)
from tabload.pipeline.locks import DatasetLocks
from tabload.pipeline.stages import (
    BaseStage,
    InferSchemaStage,
    LoadDataStage,
    MaterializeTableStage,
    NotifyStage,
    ValidateStage,
)

logger = get_logger(__name__)

# Held under the dataset lock: table existence check, creation and first load
LOCKED_STAGES = frozenset({"materialize_table", "load_data"})


def default_stages() -> list[BaseStage]:
    """The ingestion stages, in execution order."""
    return [
        ValidateStage(),
        InferSchemaStage(),
        MaterializeTableStage(),
        LoadDataStage(),
        NotifyStage(),
    ]


@dataclass
class IngestionPipeline:
    """Runs ingestion jobs against the injected collaborators.

    One instance serves every worker: all run state lives in the job, the
    metadata store and the per-call StageContext.
    """

    store: MetadataStore
    validator: FileValidator
    row_source_factory: RowSourceFactory
    discovery: StorageDiscovery
    storage: StorageClient
    notifier: Notifier
    stages: list[BaseStage] = field(default_factory=default_stages)
    locks: DatasetLocks | None = field(default_factory=DatasetLocks)

    def run(self, job: IngestionJob) -> JobRunResult:
        """Run every stage for ``job`` and report the terminal status.

        Never raises for stage failures; use JobRunResult.raise_for_status().
        """
        start_time = time.time()
        results: dict[str, StageResult] = {}
        status = JobStatus.UPLOADED
        failed_stage: str | None = None

        ctx = StageContext(
            job=job,
            store=self.store,
            validator=self.validator,
            row_source_factory=self.row_source_factory,
            discovery=self.discovery,
            storage=self.storage,
            notifier=self.notifier,
        )

        with log_context(job_id=job.job_id, dataset_id=job.dataset_id, file_id=job.file_id):
            start_job_metrics(job_id=job.job_id, dataset_id=job.dataset_id)
            self._record_history("start_run", job)
            logger.info("job_started", mode=job.mode.value, file=job.source_path.name)

            with ExitStack() as dataset_lock:
                locked = False
                for stage in self.stages:
                    definition = get_stage_definition(stage.name) or StageDefinition(
                        name=stage.name, description=stage.description
                    )

                    if self.locks is not None:
                        if stage.name in LOCKED_STAGES and not locked:
                            dataset_lock.enter_context(self.locks.hold(job.dataset_id))
                            locked = True
                        elif stage.name not in LOCKED_STAGES and locked:
                            dataset_lock.close()
                            locked = False

                    result = self._run_stage(stage, definition, ctx)
                    results[stage.name] = result

                    if result.status == StageStatus.COMPLETED:
                        ctx.previous_outputs[stage.name] = result.outputs
                        if definition.success_status is not None:
                            status = definition.success_status
                        logger.info(
                            "stage_completed",
                            stage=stage.name,
                            duration=round(result.duration_seconds, 3),
                        )
                        for warning in result.warnings:
                            logger.warning("stage_warning", stage=stage.name, warning=warning)
                    elif result.status == StageStatus.SKIPPED:
                        logger.info("stage_skipped", stage=stage.name, reason=result.error)
                    elif definition.best_effort:
                        logger.warning("stage_failed_ignored", stage=stage.name, error=result.error)
                    else:
                        failed_stage = stage.name
                        if definition.error_status is not None:
                            status = definition.error_status
                        logger.error("stage_failed", stage=stage.name, error=result.error)
                        self._notify_failure(job, stage.name, result.error)
                        break

            job_metrics = end_job_metrics()
            if job_metrics is not None:
                logger.debug("job_metrics", metrics=job_metrics.to_dict())

            loaded = results.get("load_data")
            run_result = JobRunResult(
                job_id=job.job_id,
                status=status,
                results=results,
                failed_stage=failed_stage,
                duration_seconds=time.time() - start_time,
            )
            self._record_history(
                "finish_run",
                job.job_id,
                status=status.value,
                duration_seconds=run_result.duration_seconds,
                rows_processed=loaded.records_processed if loaded else 0,
                failed_stage=failed_stage,
                error=run_result.error,
            )

            if failed_stage is None:
                logger.info(
                    "job_completed",
                    status=status.value,
                    duration=round(run_result.duration_seconds, 3),
                )
            else:
                logger.error("job_failed", status=status.value, stage=failed_stage)

        return run_result

    def _run_stage(
        self,
        stage: BaseStage,
        definition: StageDefinition,
        ctx: StageContext,
    ) -> StageResult:
        """Run one stage and write the upload status it implies."""
        start_time = time.time()
        start_stage_metrics(stage.name)

        try:
            skip_reason = stage.should_skip(ctx)
            if skip_reason:
                result = StageResult.skipped(skip_reason)
            else:
                result = self._set_status(ctx.job, definition.running_status)
                if result is None:
                    result = stage.run(ctx)
                if result.status == StageStatus.COMPLETED:
                    result = self._set_status(ctx.job, definition.success_status) or result
                result.duration_seconds = time.time() - start_time

            if result.status == StageStatus.FAILED and definition.error_status is not None:
                try:
                    ctx.store.update_status(ctx.job, definition.error_status)
                except Exception as e:
                    # The stage's own error is what gets reported
                    logger.error(
                        "status_update_failed",
                        stage=stage.name,
                        status=definition.error_status.value,
                        error=str(e),
                    )
        finally:
            stage_metrics = end_stage_metrics()

        if stage_metrics is not None and stage_metrics.rows_processed:
            result.records_processed = result.records_processed or stage_metrics.rows_processed

        self._record_history(
            "record_stage",
            ctx.job.job_id,
            stage.name,
            result.status.value,
            duration_seconds=result.duration_seconds,
            outputs=result.outputs or None,
            error=result.error,
            warnings=result.warnings or None,
        )
        return result

    def _set_status(self, job: IngestionJob, status: JobStatus | None) -> StageResult | None:
        """Write a status; a failed write becomes a failed stage result."""
        if status is None:
            return None
        try:
            self.store.update_status(job, status)
        except Exception as e:
            return StageResult.failed(f"cannot set status {status.value}: {e}", exception=e)
        return None

    def _notify_failure(self, job: IngestionJob, stage_name: str, error: str | None) -> None:
        try:
            self.notifier.send_error(
                job.user_ref,
                f"{job.display_name} failed at {stage_name}: {error or 'unknown error'}",
            )
        except Exception as e:
            logger.warning("notification_failed", stage=stage_name, error=str(e))

    def _record_history(self, method: str, *args: Any, **kwargs: Any) -> None:
        """Mirror run progress into the store when it keeps run history."""
        if not isinstance(self.store, RunHistory):
            return
        try:
            getattr(self.store, method)(*args, **kwargs)
        except Exception as e:
            # History is a mirror of the upload status; never fail the job over it
            logger.warning("run_history_failed", operation=method, error=str(e))
