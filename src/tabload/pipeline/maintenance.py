"""Dataset maintenance operations outside the ingestion run."""

from __future__ import annotations

from tabload.core.errors import MetadataError
from tabload.core.logging import get_logger, log_context
from tabload.pipeline.interfaces import StorageClient
from tabload.storage.metadata_store import SqlMetadataStore

logger = get_logger(__name__)


def delete_dataset(dataset_id: str, store: SqlMetadataStore, storage: StorageClient) -> None:
    """Delete a dataset's table from storage, then its metadata.

    The table is dropped first: if that fails the metadata is kept so the
    deletion can be retried.

    Raises:
        MetadataError: The dataset does not exist or its metadata cannot be removed
        StorageError: The table cannot be dropped
    """
    with log_context(dataset_id=dataset_id):
        if store.get_dataset(dataset_id) is None:
            raise MetadataError(f"unknown dataset: {dataset_id}")

        table = store.get_dataset_table(dataset_id)
        if table is not None:
            storage.delete_table(table)
        else:
            logger.info("dataset_has_no_table")

        store.delete_dataset(dataset_id)
        logger.info("dataset_deleted", table=table.table_name if table else None)
