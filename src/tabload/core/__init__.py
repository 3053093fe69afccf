"""Core module - configuration, connections, errors and shared models."""

from tabload.core.config import Settings, get_settings
from tabload.core.connections import ConnectionConfig, ConnectionManager
from tabload.core.errors import (
    IngestionError,
    MetadataError,
    NoCandidates,
    ReadError,
    SchemaMismatch,
    StageFailed,
    StorageError,
    UnsupportedFormat,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Connections
    "ConnectionConfig",
    "ConnectionManager",
    # Errors
    "IngestionError",
    "MetadataError",
    "NoCandidates",
    "ReadError",
    "SchemaMismatch",
    "StageFailed",
    "StorageError",
    "UnsupportedFormat",
]
