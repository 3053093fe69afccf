"""Tests for pipeline base types."""

import pytest

from tabload.core.errors import StageFailed
from tabload.core.models import JobStatus
from tabload.pipeline import (
    INGESTION_STAGES,
    JobRunResult,
    StageResult,
    StageStatus,
    default_stages,
)
from tabload.pipeline.base import get_stage_definition


class TestStageResult:
    """Tests for StageResult."""

    def test_success(self):
        result = StageResult.success(
            outputs={"key": "value"},
            duration=1.5,
            records_processed=100,
        )
        assert result.status == StageStatus.COMPLETED
        assert result.outputs == {"key": "value"}
        assert result.duration_seconds == 1.5
        assert result.records_processed == 100
        assert result.error is None

    def test_failed(self):
        error = ValueError("boom")
        result = StageResult.failed("Something went wrong", duration=0.5, exception=error)
        assert result.status == StageStatus.FAILED
        assert result.error == "Something went wrong"
        assert result.duration_seconds == 0.5
        assert result.exception is error

    def test_skipped(self):
        result = StageResult.skipped("Append mode")
        assert result.status == StageStatus.SKIPPED
        assert result.error == "Append mode"


class TestIngestionStages:
    """Tests for the stage definitions."""

    def test_order(self):
        assert [s.name for s in INGESTION_STAGES] == [
            "validate",
            "infer_schema",
            "materialize_table",
            "load_data",
            "notify",
        ]

    def test_default_stages_match_definitions(self):
        assert [s.name for s in default_stages()] == [s.name for s in INGESTION_STAGES]

    def test_all_stages_have_descriptions(self):
        for stage in INGESTION_STAGES:
            assert stage.description
            assert isinstance(stage.description, str)

    def test_validate_statuses(self):
        validate = get_stage_definition("validate")
        assert validate is not None
        assert validate.running_status == JobStatus.VALIDATING
        assert validate.success_status == JobStatus.VALIDATED
        assert validate.error_status == JobStatus.VALIDATION_ERROR

    def test_only_load_completes_the_job(self):
        completing = [s.name for s in INGESTION_STAGES if s.success_status == JobStatus.COMPLETED]
        assert completing == ["load_data"]

    def test_notify_is_best_effort(self):
        notify = get_stage_definition("notify")
        assert notify is not None
        assert notify.best_effort
        assert notify.error_status is None

    def test_unknown_stage(self):
        assert get_stage_definition("nonexistent") is None


class TestJobRunResult:
    def test_succeeded(self):
        result = JobRunResult(job_id="j", status=JobStatus.COMPLETED)
        assert result.succeeded
        assert result.error is None
        result.raise_for_status()

    def test_failed(self):
        result = JobRunResult(
            job_id="j",
            status=JobStatus.SCHEMA_ERROR,
            results={"infer_schema": StageResult.failed("bad header")},
            failed_stage="infer_schema",
        )
        assert not result.succeeded
        assert result.error == "bad header"
        with pytest.raises(StageFailed, match="infer_schema: bad header"):
            result.raise_for_status()
