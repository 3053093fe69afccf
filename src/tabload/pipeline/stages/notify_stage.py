"""Notify stage implementation."""

from __future__ import annotations

from tabload.pipeline.base import StageContext, StageResult
from tabload.pipeline.stages.base import BaseStage


class NotifyStage(BaseStage):
    """Asks the index service to refresh the user's schema.

    Best-effort: the data is already durable, so a failure here is logged by
    the orchestrator and never changes the job's status.
    """

    @property
    def name(self) -> str:
        return "notify"

    @property
    def description(self) -> str:
        return "Ask the index service to refresh the user's schema"

    def _run(self, ctx: StageContext) -> StageResult:
        ctx.notifier.refresh_index(ctx.job.user_ref)
        self._send_info(ctx, f"{ctx.job.display_name} is ready")
        return StageResult.success()
