"""Table materialization stage implementation.

Binds the dataset to a table on the least-loaded storage target. A dataset
that already has a table keeps it; the stage is then a no-op.
"""

from __future__ import annotations

from tabload.core.logging import get_logger
from tabload.core.models import TableHandle, new_uid
from tabload.datastores.selector import select_least_loaded
from tabload.pipeline.base import StageContext, StageResult
from tabload.pipeline.stages.base import BaseStage

logger = get_logger(__name__)


class MaterializeTableStage(BaseStage):
    """Storage selection and table identity stage."""

    @property
    def name(self) -> str:
        return "materialize_table"

    @property
    def description(self) -> str:
        return "Select a storage target and bind a table to the dataset"

    def _run(self, ctx: StageContext) -> StageResult:
        job = ctx.job

        existing = ctx.store.load_table(job)
        if existing is not None:
            return StageResult.success(outputs=_table_outputs(existing))

        target = select_least_loaded(ctx.discovery.list_candidates())
        table = ctx.store.create_table_if_absent(
            job, TableHandle(table_uid=new_uid(), storage_target_id=target.id)
        )

        if table.created:
            ctx.store.set_column_parent(job, table.table_uid)
            logger.info(
                "table_bound",
                dataset_id=job.dataset_id,
                table=table.table_name,
                target=table.storage_target_id,
                target_datasets=target.current_dataset_count,
            )

        return StageResult.success(outputs=_table_outputs(table))


def _table_outputs(table: TableHandle) -> dict[str, object]:
    return {
        "table_uid": table.table_uid,
        "storage_target_id": table.storage_target_id,
        "created": table.created,
    }
