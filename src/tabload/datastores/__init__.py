"""Storage targets: selection, discovery and bulk loading.

Storage targets are DuckDB database files listed in the storage targets
YAML file; see core.config.load_storage_targets.
"""

from tabload.datastores.discovery import DuckDBStorageDiscovery
from tabload.datastores.duckdb_client import DuckDBStorageClient
from tabload.datastores.selector import select_least_loaded
from tabload.datastores.targets import DuckDBTargets

__all__ = [
    "DuckDBStorageClient",
    "DuckDBStorageDiscovery",
    "DuckDBTargets",
    "select_least_loaded",
]
