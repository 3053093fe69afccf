"""Schema inference stage implementation.

Loads the dataset's current schema, narrows it over the whole file and
persists the result. Columns keep their uid across runs: known columns are
updated in place, new ones are created.
"""

from __future__ import annotations

from tabload.analysis.typing import SchemaInferencer
from tabload.core.logging import get_logger
from tabload.pipeline.base import StageContext, StageResult
from tabload.pipeline.stages.base import BaseStage

logger = get_logger(__name__)


class InferSchemaStage(BaseStage):
    """Column type inference stage. Skipped for appends."""

    def __init__(self, inferencer: SchemaInferencer | None = None):
        self.inferencer = inferencer or SchemaInferencer()

    @property
    def name(self) -> str:
        return "infer_schema"

    @property
    def description(self) -> str:
        return "Infer column types and persist the schema"

    def should_skip(self, ctx: StageContext) -> str | None:
        if ctx.job.append:
            return "append mode reuses the dataset's schema"
        return None

    def _run(self, ctx: StageContext) -> StageResult:
        job = ctx.job
        existing = ctx.store.load_columns(job)

        source = ctx.row_source_factory(job.source_path)
        try:
            columns = self.inferencer.infer(source, existing)
        finally:
            source.close()

        saved = ctx.store.save_columns(job, columns)

        logger.info(
            "schema_persisted",
            dataset_id=job.dataset_id,
            columns=len(saved),
            reused=len(existing),
        )
        return StageResult.success(
            outputs={
                "columns": len(saved),
                "types": {column.name: column.data_type.value for column in saved},
            },
        )
