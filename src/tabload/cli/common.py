"""Shared CLI utilities and constants."""

from __future__ import annotations

from typing import TYPE_CHECKING, Annotated

import typer
from dotenv import load_dotenv
from rich.console import Console

from tabload.core.config import get_settings
from tabload.core.logging import configure_logging
from tabload.core.models import JobStatus

if TYPE_CHECKING:
    from tabload.pipeline.runner import IngestionRuntime
    from tabload.storage.metadata_store import SqlMetadataStore

# Load .env file from current directory (TABLOAD_* settings)
load_dotenv()

# Shared console instance
console = Console()

# Common type aliases for typer options
JsonFlag = Annotated[
    bool,
    typer.Option(
        "--json",
        help="Output as JSON for scripting",
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-v=INFO, -vv=DEBUG)",
    ),
]

LogFormatOption = Annotated[
    str | None,
    typer.Option(
        "--log-format",
        help="Log output format (console or json); defaults to TABLOAD_LOG_FORMAT",
    ),
]


def styled_status(status: str) -> str:
    try:
        job_status = JobStatus(status)
    except ValueError:
        return status
    if job_status.is_error:
        style = "red"
    elif job_status == JobStatus.COMPLETED:
        style = "green"
    else:
        style = "yellow"
    return f"[{style}]{status}[/{style}]"


def setup_logging(verbosity: int = 0, log_format: str | None = None) -> None:
    """Configure structured logging based on verbosity level.

    Args:
        verbosity: 0=TABLOAD_LOG_LEVEL (WARNING by default), 1=INFO, 2+=DEBUG
        log_format: "console" for development, "json" for production/cloud
    """
    if verbosity >= 2:
        level = "DEBUG"
    elif verbosity >= 1:
        level = "INFO"
    else:
        level = get_settings().log_level

    log_format = log_format or get_settings().log_format
    configure_logging(
        log_level=level,
        log_format=log_format,
        show_timestamps=verbosity >= 1,
        color=log_format == "console",
    )


def get_runtime() -> IngestionRuntime:
    """Create the ingestion runtime from settings.

    Returns the runtime. Caller is responsible for closing it.
    """
    from tabload.pipeline.runner import IngestionRuntime

    try:
        return IngestionRuntime.from_settings(get_settings())
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e


def get_store() -> SqlMetadataStore:
    """Open the metadata store without starting ingestion workers.

    Caller is responsible for closing ``store.manager``.
    """
    from tabload.core.connections import ConnectionConfig, ConnectionManager
    from tabload.storage.metadata_store import SqlMetadataStore

    manager = ConnectionManager(ConnectionConfig(database_url=get_settings().database_url))
    try:
        manager.initialize()
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e
    return SqlMetadataStore(manager)
