"""Structured logging infrastructure.

Usage:
    from tabload.core.logging import get_logger, configure_logging

    # Configure at startup
    configure_logging(log_level="INFO", log_format="console")

    # Get logger in any module
    logger = get_logger(__name__)

    # Log with structured context
    logger.info("stage_started", stage="validate", file_id="abc123")

    # Scoped context
    with log_context(job_id="job-123", dataset_id="ds-1"):
        logger.info("rows_scanned", rows=1000)
"""

from __future__ import annotations

import logging
import sys
from collections.abc import MutableMapping
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, cast

import structlog
from structlog.typing import FilteringBoundLogger

# Context variables for correlation
_run_context: ContextVar[dict[str, Any] | None] = ContextVar("run_context", default=None)


@dataclass
class StageMetrics:
    """Metrics collected while a pipeline stage runs."""

    stage_name: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None

    rows_processed: int = 0
    db_queries: int = 0
    db_writes: int = 0

    # Sub-operation timings (seconds)
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def duration_seconds(self) -> float:
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return (datetime.now(UTC) - self.start_time).total_seconds()

    def record_timing(self, operation: str, seconds: float) -> None:
        self.timings[operation] = self.timings.get(operation, 0.0) + seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "stage_name": self.stage_name,
            "duration_seconds": self.duration_seconds,
            "rows_processed": self.rows_processed,
            "db_queries": self.db_queries,
            "db_writes": self.db_writes,
            "timings": self.timings,
        }


@dataclass
class JobMetrics:
    """Aggregate metrics for one ingestion job."""

    job_id: str
    dataset_id: str
    start_time: datetime = field(default_factory=lambda: datetime.now(UTC))
    end_time: datetime | None = None
    stages: list[StageMetrics] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return (datetime.now(UTC) - self.start_time).total_seconds()

    @property
    def rows_processed(self) -> int:
        return sum(s.rows_processed for s in self.stages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "dataset_id": self.dataset_id,
            "duration_seconds": self.duration_seconds,
            "stage_count": len(self.stages),
            "rows_processed": self.rows_processed,
            "stages": [s.to_dict() for s in self.stages],
        }


# Metrics storage (per job; worker threads each carry their own context)
_current_job_metrics: ContextVar[JobMetrics | None] = ContextVar(
    "current_job_metrics", default=None
)
_current_stage_metrics: ContextVar[StageMetrics | None] = ContextVar(
    "current_stage_metrics", default=None
)


def start_job_metrics(job_id: str, dataset_id: str) -> JobMetrics:
    """Start collecting metrics for a job."""
    metrics = JobMetrics(job_id=job_id, dataset_id=dataset_id)
    _current_job_metrics.set(metrics)
    return metrics


def end_job_metrics() -> JobMetrics | None:
    """End job metrics collection."""
    metrics = _current_job_metrics.get()
    if metrics:
        metrics.end_time = datetime.now(UTC)
        _current_job_metrics.set(None)
    return metrics


def start_stage_metrics(stage_name: str) -> StageMetrics:
    """Start collecting metrics for a stage."""
    metrics = StageMetrics(stage_name=stage_name)
    _current_stage_metrics.set(metrics)
    return metrics


def end_stage_metrics() -> StageMetrics | None:
    """End current stage metrics and add them to the job metrics."""
    stage_metrics = _current_stage_metrics.get()
    if stage_metrics:
        stage_metrics.end_time = datetime.now(UTC)
        job_metrics = _current_job_metrics.get()
        if job_metrics:
            job_metrics.stages.append(stage_metrics)
        _current_stage_metrics.set(None)
    return stage_metrics


def _add_run_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add run context to log events."""
    context = _run_context.get()
    if context:
        event_dict.update(context)
    return event_dict


def _add_metrics_context(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Processor to add the current stage to log events."""
    stage_metrics = _current_stage_metrics.get()
    if stage_metrics:
        event_dict["_stage"] = stage_metrics.stage_name
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    show_timestamps: bool = True,
    color: bool = True,
) -> None:
    """Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Output format ("console" for development, "json" for production)
        show_timestamps: Whether to show timestamps
        color: Whether to use colors in console mode
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_run_context,
        _add_metrics_context,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if show_timestamps:
        shared_processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if log_format == "json":
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(
                colors=color,
                exception_formatter=structlog.dev.plain_traceback,
            ),
        ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, log_level.upper())),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Also configure stdlib logging for libraries
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper()),
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
    )


def get_logger(name: str | None = None) -> FilteringBoundLogger:
    """Get a structured logger.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Bound structlog logger
    """
    return cast(FilteringBoundLogger, structlog.get_logger(name))


class LogContext:
    """Context manager for adding context to logs within a scope."""

    def __init__(self, **context: Any):
        self.context = context
        self.token: Any = None

    def __enter__(self) -> LogContext:
        current = _run_context.get() or {}
        self.token = _run_context.set({**current, **self.context})
        return self

    def __exit__(self, *args: Any) -> None:
        if self.token:
            _run_context.reset(self.token)


def log_context(**context: Any) -> LogContext:
    """Create a context manager for scoped logging context.

    Usage:
        with log_context(job_id="abc", stage="validate"):
            logger.info("processing")  # Will include job_id and stage
    """
    return LogContext(**context)


def increment_db_query() -> None:
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.db_queries += 1


def increment_db_write() -> None:
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.db_writes += 1


def record_rows_processed(count: int) -> None:
    """Record rows processed in current stage metrics."""
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.rows_processed += count


def record_operation_timing(operation: str, seconds: float) -> None:
    """Record timing for a sub-operation in current stage metrics."""
    metrics = _current_stage_metrics.get()
    if metrics:
        metrics.record_timing(operation, seconds)
