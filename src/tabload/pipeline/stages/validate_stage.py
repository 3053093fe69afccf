"""Validate stage implementation.

Runs the format validator over the uploaded file and replaces the stored
row-level findings with the new ones. Findings are data, not failures; only a
validator that cannot read the file fails the stage.
"""

from __future__ import annotations

from tabload.core.logging import get_logger
from tabload.pipeline.base import StageContext, StageResult
from tabload.pipeline.stages.base import BaseStage

logger = get_logger(__name__)


class ValidateStage(BaseStage):
    """File validation stage."""

    @property
    def name(self) -> str:
        return "validate"

    @property
    def description(self) -> str:
        return "Validate the file and store row-level findings"

    def _run(self, ctx: StageContext) -> StageResult:
        job = ctx.job
        findings = ctx.validator.validate(job.source_path)

        # Re-validation replaces earlier findings instead of adding to them
        ctx.store.delete_row_errors(job)
        ctx.store.save_row_errors(job, findings)

        if findings:
            logger.info("validation_findings", file_id=job.file_id, count=len(findings))

        self._send_info(
            ctx, f"validated {job.display_name}: {len(findings)} row errors found"
        )

        return StageResult.success(
            outputs={"row_errors": len(findings)},
            warnings=[f"{len(findings)} row-level findings recorded"] if findings else None,
        )
