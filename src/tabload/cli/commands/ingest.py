"""Ingest command - upload a CSV file and run the pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table as RichTable

from tabload.cli.common import (
    LogFormatOption,
    VerboseOption,
    console,
    get_runtime,
    setup_logging,
    styled_status,
)
from tabload.core.errors import IngestionError
from tabload.core.models import IngestionMode


def ingest(
    source: Annotated[
        Path,
        typer.Argument(
            help="Path to the CSV file to ingest",
            exists=True,
            file_okay=True,
            dir_okay=False,
            resolve_path=True,
        ),
    ],
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Dataset name (default: file name without extension)",
        ),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option(
            "--user",
            "-u",
            help="User reference notifications are addressed to",
        ),
    ] = None,
    append: Annotated[
        str | None,
        typer.Option(
            "--append",
            "-a",
            help="Append the rows to an existing dataset (dataset id)",
        ),
    ] = None,
    replace: Annotated[
        str | None,
        typer.Option(
            "--replace",
            "-r",
            help="Ingest the file again as a replacement for an upload (file id)",
        ),
    ] = None,
    verbose: VerboseOption = 0,
    log_format: LogFormatOption = None,
) -> None:
    """Upload a CSV file and run the ingestion pipeline on it.

    Waits for the run to finish and prints the outcome of every stage.

    Examples:

        tabload ingest sales.csv

        tabload ingest sales.csv --name "Sales 2024" --user alice

        tabload ingest more_sales.csv --append <dataset-id>

        tabload ingest fixed_sales.csv --replace <file-id>

        tabload ingest sales.csv -vv         # Show DEBUG level logs
    """
    setup_logging(verbosity=verbose, log_format=log_format)

    if append and replace:
        console.print("[red]--append and --replace cannot be combined[/red]")
        raise typer.Exit(1)

    runtime = get_runtime()
    try:
        try:
            if replace:
                file_id = replace
                job_id = runtime.reingest(replace, source=source, user_ref=user)
            else:
                upload, job_id = runtime.ingest(
                    source,
                    name=name,
                    user_ref=user,
                    dataset_id=append,
                    mode=IngestionMode.APPEND if append else IngestionMode.CREATE,
                )
                file_id = upload.file_id
        except IngestionError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1) from e

        console.print(f"\n[bold]Ingesting[/bold] {source.name}")
        console.print(f"  File ID: {file_id}")
        console.print(f"  Job ID:  {job_id}")

        result = runtime.queue.result(job_id)
        upload = runtime.store.get_upload(file_id)
    finally:
        runtime.close()

    table = RichTable(show_header=True, header_style="bold")
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Details")

    status_icons = {
        "completed": "[green]✓[/green]",
        "failed": "[red]✗[/red]",
        "skipped": "[yellow]○[/yellow]",
    }
    for stage_name, stage_result in result.results.items():
        details = stage_result.error or ""
        if stage_result.warnings:
            details = f"{len(stage_result.warnings)} row error(s)"
        table.add_row(
            stage_name,
            f"{status_icons.get(stage_result.status.value, '?')} {stage_result.status.value}",
            f"{stage_result.duration_seconds:.2f}s",
            details,
        )

    console.print()
    console.print(table)
    console.print(f"\nStatus: {styled_status(result.status.value)}")
    if upload is not None:
        console.print(f"Dataset ID: {upload.dataset_id}")
    console.print(f"Duration: {result.duration_seconds:.2f}s\n")

    raise typer.Exit(0 if result.succeeded else 1)
