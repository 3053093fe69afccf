"""Load data stage implementation."""

from __future__ import annotations

from tabload.core.errors import SchemaMismatch, StorageError
from tabload.core.logging import get_logger
from tabload.pipeline.base import StageContext, StageResult
from tabload.pipeline.stages.base import BaseStage

logger = get_logger(__name__)


class LoadDataStage(BaseStage):
    """Bulk loads the file into the dataset's table.

    The table is created by the load only while the dataset's table-created
    marker is unset; the marker is set after the first successful load.
    """

    @property
    def name(self) -> str:
        return "load_data"

    @property
    def description(self) -> str:
        return "Bulk load the file into the dataset's table"

    def _run(self, ctx: StageContext) -> StageResult:
        job = ctx.job

        table = ctx.store.load_table(job)
        if table is None:
            raise StorageError(f"dataset {job.dataset_id} has no table")

        columns = ctx.store.load_columns(job)
        if not columns:
            raise SchemaMismatch(f"dataset {job.dataset_id} has no schema")

        # Appends never ran inference against this file
        field_count = self._header_width(ctx)
        if field_count != len(columns):
            raise SchemaMismatch(
                f"file has {field_count} fields but the dataset schema has {len(columns)}"
            )

        create_table = not ctx.store.is_table_created(job)
        rows = ctx.storage.bulk_load(
            job.source_path,
            table,
            columns,
            append=job.append,
            create_table=create_table,
        )

        if create_table:
            ctx.store.mark_table_created(job, table.storage_target_id)

        return StageResult.success(
            outputs={
                "table": table.table_name,
                "append": job.append,
                "create_table": create_table,
                "rows": rows,
            },
            records_processed=rows or 0,
        )

    def _header_width(self, ctx: StageContext) -> int:
        source = ctx.row_source_factory(ctx.job.source_path)
        try:
            return len(source.read_header())
        except EOFError as e:
            raise SchemaMismatch("end of input reached before the header could be read") from e
        finally:
            source.close()
