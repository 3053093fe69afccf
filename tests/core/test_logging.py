"""Tests for logging context and job metrics."""

from tabload.core.logging import (
    _add_metrics_context,
    _add_run_context,
    end_job_metrics,
    end_stage_metrics,
    increment_db_query,
    increment_db_write,
    log_context,
    record_operation_timing,
    record_rows_processed,
    start_job_metrics,
    start_stage_metrics,
)


class TestLogContext:
    def test_nested_context_is_merged_and_restored(self):
        with log_context(job_id="job-1"):
            with log_context(stage="validate"):
                event = _add_run_context(None, "info", {"event": "x"})
                assert event == {"event": "x", "job_id": "job-1", "stage": "validate"}

            event = _add_run_context(None, "info", {"event": "y"})
            assert event == {"event": "y", "job_id": "job-1"}

        assert _add_run_context(None, "info", {"event": "z"}) == {"event": "z"}


class TestMetrics:
    def test_stage_metrics_roll_up_into_job(self):
        start_job_metrics(job_id="job-1", dataset_id="ds-1")

        start_stage_metrics("validate")
        record_rows_processed(10)
        increment_db_query()
        event = _add_metrics_context(None, "info", {})
        validate = end_stage_metrics()

        start_stage_metrics("load_data")
        record_rows_processed(10)
        increment_db_write()
        record_operation_timing("insert", 0.5)
        record_operation_timing("insert", 0.25)
        end_stage_metrics()

        job = end_job_metrics()

        assert event == {"_stage": "validate"}
        assert validate is not None
        assert validate.db_queries == 1
        assert job is not None
        assert [s.stage_name for s in job.stages] == ["validate", "load_data"]
        assert job.rows_processed == 20

        data = job.to_dict()
        assert data["stage_count"] == 2
        assert data["stages"][1]["db_writes"] == 1
        assert data["stages"][1]["timings"] == {"insert": 0.75}

    def test_recording_without_active_stage_is_ignored(self):
        record_rows_processed(5)
        increment_db_write()

        assert end_stage_metrics() is None
        assert end_job_metrics() is None
        assert _add_metrics_context(None, "info", {}) == {}
