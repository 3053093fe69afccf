"""CLI command implementations."""

from tabload.cli.commands import (
    delete,
    errors,
    ingest,
    status,
    targets,
)

__all__ = [
    "delete",
    "errors",
    "ingest",
    "status",
    "targets",
]
