"""Base stage implementation.

Provides common functionality for all pipeline stages.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tabload.core.logging import get_logger
from tabload.pipeline.base import StageContext, StageResult

logger = get_logger(__name__)


class BaseStage(ABC):
    """Base class for pipeline stages.

    Subclasses must implement:
    - name property
    - description property
    - _run method
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this stage."""
        ...

    @property
    @abstractmethod
    def description(self) -> str:
        """Human-readable description."""
        ...

    def run(self, ctx: StageContext) -> StageResult:
        """Execute the stage.

        Wraps _run with common error handling: any exception becomes a
        failed result that keeps the original exception.
        """
        try:
            return self._run(ctx)
        except Exception as e:
            logger.debug("stage_raised", stage=self.name, error=str(e), exc_info=True)
            return StageResult.failed(str(e), exception=e)

    @abstractmethod
    def _run(self, ctx: StageContext) -> StageResult:
        """Execute the stage logic.

        Subclasses implement this method.
        """
        ...

    def should_skip(self, ctx: StageContext) -> str | None:
        """Check if this stage should be skipped.

        Default implementation: never skip.

        Returns:
            None if the stage should run, or a reason string if it should be skipped.
        """
        return None

    def _send_info(self, ctx: StageContext, message: str) -> None:
        """Send a progress message to the user. Failures are only logged."""
        try:
            ctx.notifier.send_info(ctx.job.user_ref, message)
        except Exception as e:
            logger.warning("notification_failed", stage=self.name, error=str(e))
