"""Background execution of ingestion jobs.

Jobs are accepted immediately and run on a bounded worker pool. A job cannot
be cancelled once it starts; it runs to completion or to its first failing
stage.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from contextvars import copy_context

from tabload.core.logging import get_logger
from tabload.core.models import IngestionJob
from tabload.pipeline.base import JobRunResult
from tabload.pipeline.orchestrator import IngestionPipeline

logger = get_logger(__name__)


class IngestionQueue:
    """Bounded worker pool running IngestionPipeline jobs.

    Usage:
        queue = IngestionQueue(pipeline, max_workers=4)
        job_id = queue.submit(job)
        result = queue.result(job_id)
        queue.shutdown()
    """

    def __init__(self, pipeline: IngestionPipeline, max_workers: int = 4):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.pipeline = pipeline
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="ingest"
        )
        self._futures: dict[str, Future[JobRunResult]] = {}
        self._lock = threading.Lock()

    def submit(self, job: IngestionJob) -> str:
        """Accept a job and return its id without waiting for any stage."""
        # Each job starts from the submitter's logging context, isolated from other jobs
        context = copy_context()
        with self._lock:
            if job.job_id in self._futures:
                raise ValueError(f"job {job.job_id} already submitted")
            future = self._executor.submit(context.run, self._run, job)
            self._futures[job.job_id] = future

        logger.info("job_submitted", job_id=job.job_id, dataset_id=job.dataset_id)
        return job.job_id

    def _run(self, job: IngestionJob) -> JobRunResult:
        try:
            return self.pipeline.run(job)
        except Exception:
            logger.exception("job_crashed", job_id=job.job_id)
            raise

    def future(self, job_id: str) -> Future[JobRunResult]:
        with self._lock:
            try:
                return self._futures[job_id]
            except KeyError:
                raise KeyError(f"unknown job: {job_id}") from None

    def done(self, job_id: str) -> bool:
        return self.future(job_id).done()

    def result(self, job_id: str, timeout: float | None = None) -> JobRunResult:
        """Wait for a job to finish and return its outcome."""
        return self.future(job_id).result(timeout=timeout)

    @property
    def pending(self) -> int:
        with self._lock:
            return sum(1 for f in self._futures.values() if not f.done())

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting jobs; with ``wait`` block until running jobs finish."""
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> IngestionQueue:
        return self

    def __exit__(self, *args: object) -> None:
        self.shutdown(wait=True)
