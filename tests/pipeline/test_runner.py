"""End-to-end ingestion against SQLite metadata and DuckDB storage."""

from pathlib import Path

import pytest

from tabload.core.config import Settings
from tabload.core.errors import MetadataError, UnsupportedFormat
from tabload.core.models import DataType, IngestionJob, IngestionMode, JobStatus
from tabload.pipeline import delete_dataset
from tabload.pipeline.runner import IngestionRuntime

SALES = "id,amount,sold_on\n1,2.5,2006-Jan-02\n2,3,2006-Feb-03\n"
MORE_SALES = "id,amount,sold_on\n3,1,2006-Mar-04\n4,n/a,2006-Apr-05\n"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "storage_targets.yaml").write_text(
        "targets:\n"
        "  - id: primary\n"
        "    path: ../storage/primary.duckdb\n"
        "  - id: secondary\n"
        "    path: ../storage/secondary.duckdb\n"
    )
    return Settings(
        database_url="sqlite://",
        config_path=config_dir,
        upload_dir=tmp_path / "uploads",
        worker_count=2,
    )


@pytest.fixture
def runtime(settings: Settings):
    with IngestionRuntime.from_settings(settings) as runtime:
        yield runtime


def row_count(runtime: IngestionRuntime, dataset_id: str) -> int:
    table = runtime.store.get_dataset_table(dataset_id)
    assert table is not None
    with runtime.targets.connect(table.storage_target_id) as conn:
        row = conn.execute(f'SELECT COUNT(*) FROM "{table.table_name}"').fetchone()
    return row[0]


def job_for(dataset_id: str, file_id: str) -> IngestionJob:
    return IngestionJob(file_id=file_id, dataset_id=dataset_id, source_path=Path("unused.csv"))


class TestIngest:
    """Tests for IngestionRuntime.ingest."""

    def test_new_dataset(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"), user_ref="alice")

        result = runtime.queue.result(job_id, timeout=30)

        assert result.status == JobStatus.COMPLETED
        assert runtime.store.get_upload(upload.file_id).status == "COMPLETED"
        assert row_count(runtime, upload.dataset_id) == 2
        assert runtime.store.get_dataset(upload.dataset_id).name == "sales"

    def test_notifications_use_upload_name(self, runtime, write_csv):
        _, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"), user_ref="alice")
        runtime.queue.result(job_id, timeout=30)

        messages = [n.message for n in runtime.notifier.recent if n.kind == "info"]
        assert messages == ["validated sales: 0 row errors found", "sales is ready"]

    def test_upload_is_staged(self, runtime, settings, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        runtime.queue.result(job_id, timeout=30)

        staged = Path(runtime.store.get_upload(upload.file_id).location)
        assert staged.parent == settings.upload_dir.resolve()
        assert staged.read_text() == SALES

    def test_schema_is_persisted(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        result = runtime.queue.result(job_id, timeout=30)

        assert result.results["infer_schema"].outputs["types"] == {
            "0": DataType.INT.value,
            "1": DataType.FLOAT.value,
            "2": DataType.DATE.value,
        }

    def test_run_history(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        runtime.queue.result(job_id, timeout=30)

        runs = runtime.store.get_runs(upload.file_id)

        assert len(runs) == 1
        assert runs[0].job_id == job_id
        assert runs[0].status == "COMPLETED"
        assert {c.stage_name for c in runs[0].checkpoints} == {
            "validate",
            "infer_schema",
            "materialize_table",
            "load_data",
            "notify",
        }

    def test_user_is_notified(self, runtime, write_csv):
        _, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"), user_ref="alice")
        runtime.queue.result(job_id, timeout=30)

        kinds = [n.kind for n in runtime.notifier.recent if n.user_ref == "alice"]
        assert "refresh" in kinds

    def test_unsupported_format(self, runtime, write_csv):
        with pytest.raises(UnsupportedFormat):
            runtime.ingest(write_csv("a\n1\n", name="data.txt"))
        assert runtime.store.list_uploads() == []

    def test_append_requires_dataset(self, runtime, write_csv):
        with pytest.raises(MetadataError):
            runtime.ingest(write_csv(SALES, name="sales.csv"), mode=IngestionMode.APPEND)

    def test_empty_file_fails_validation(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv("", name="empty.csv"))

        result = runtime.queue.result(job_id, timeout=30)

        # An empty file has no header to validate against
        assert result.status == JobStatus.VALIDATION_ERROR
        assert runtime.store.get_upload(upload.file_id).status == "VALIDATION_ERROR"


class TestAppendAndReplace:
    def test_append_adds_rows(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        runtime.queue.result(job_id, timeout=30)

        more, job_id = runtime.ingest(
            write_csv(MORE_SALES, name="more.csv"),
            dataset_id=upload.dataset_id,
            mode=IngestionMode.APPEND,
        )
        result = runtime.queue.result(job_id, timeout=30)

        assert result.status == JobStatus.COMPLETED
        assert more.dataset_id == upload.dataset_id
        assert row_count(runtime, upload.dataset_id) == 4
        # "n/a" does not change the dataset's schema on append
        columns = runtime.store.load_columns(job_for(upload.dataset_id, more.file_id))
        assert columns[1].data_type == DataType.FLOAT

    def test_reingest_replaces_rows(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        runtime.queue.result(job_id, timeout=30)

        job_id = runtime.reingest(upload.file_id, source=write_csv(MORE_SALES, name="v2.csv"))
        result = runtime.queue.result(job_id, timeout=30)

        assert result.status == JobStatus.COMPLETED
        assert row_count(runtime, upload.dataset_id) == 2
        assert len(runtime.store.get_runs(upload.file_id)) == 2

    def test_reingest_unknown_upload(self, runtime):
        with pytest.raises(MetadataError):
            runtime.reingest("missing")


class TestDeleteDataset:
    def test_delete_drops_table_and_metadata(self, runtime, write_csv):
        upload, job_id = runtime.ingest(write_csv(SALES, name="sales.csv"))
        runtime.queue.result(job_id, timeout=30)
        table = runtime.store.get_dataset_table(upload.dataset_id)

        delete_dataset(upload.dataset_id, runtime.store, runtime.pipeline.storage)

        assert runtime.store.get_dataset(upload.dataset_id) is None
        with runtime.targets.connect(table.storage_target_id) as conn:
            tables = conn.execute(
                "SELECT table_name FROM information_schema.tables"
            ).fetchall()
        assert (table.table_name,) not in tables

    def test_delete_unknown_dataset(self, runtime):
        with pytest.raises(MetadataError):
            delete_dataset("missing", runtime.store, runtime.pipeline.storage)
