"""Storage discovery over the configured DuckDB targets."""

from __future__ import annotations

import duckdb

from tabload.core.errors import StorageError
from tabload.core.logging import get_logger, increment_db_query
from tabload.core.models import StorageTarget
from tabload.datastores.targets import DuckDBTargets

logger = get_logger(__name__)

# Dataset tables are named table_<uid>
_COUNT_DATASET_TABLES = r"""
    SELECT COUNT(*) FROM information_schema.tables
    WHERE table_name LIKE 'table\_%' ESCAPE '\'
"""


class DuckDBStorageDiscovery:
    """Lists the configured targets with their current dataset counts."""

    def __init__(self, targets: DuckDBTargets):
        self.targets = targets

    def count_datasets(self, target_id: str) -> int:
        """Number of dataset tables stored on a target (0 if it holds no database yet)."""
        if not self.targets.path_for(target_id).exists():
            return 0
        with self.targets.connect(target_id) as conn:
            try:
                row = conn.execute(_COUNT_DATASET_TABLES).fetchone()
            except duckdb.Error as e:
                raise StorageError(f"cannot inspect storage target {target_id}: {e}") from e
        increment_db_query()
        return int(row[0]) if row else 0

    def list_candidates(self) -> list[StorageTarget]:
        """Return every configured target, in configuration order."""
        candidates = [
            StorageTarget(
                id=target_id,
                current_dataset_count=self.count_datasets(target_id),
                connection_info={"path": str(self.targets.path_for(target_id))},
            )
            for target_id in self.targets.ids
        ]
        logger.debug("storage_candidates_listed", count=len(candidates))
        return candidates
