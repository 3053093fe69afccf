"""Status command - show uploads and their ingestion runs."""

from __future__ import annotations

from typing import Annotated, Any

import typer
from rich.table import Table as RichTable

from tabload.cli.common import JsonFlag, console, get_store, styled_status
from tabload.storage.metadata_store import SqlMetadataStore
from tabload.storage.models import FileUpload, IngestionRun


def status(
    file_id: Annotated[
        str | None,
        typer.Argument(
            help="Show one upload with its run history (default: list all uploads)",
        ),
    ] = None,
    dataset: Annotated[
        str | None,
        typer.Option(
            "--dataset",
            "-d",
            help="Only list uploads of this dataset",
        ),
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Show the status of uploaded files.

    Examples:

        tabload status

        tabload status --dataset <dataset-id>

        tabload status <file-id>

        tabload status <file-id> --json
    """
    store = get_store()
    try:
        if file_id is None:
            uploads = store.list_uploads(dataset)
            if json_output:
                _print_json({"uploads": [_upload_dict(u) for u in uploads]})
            else:
                _uploads_rich(uploads)
            return

        upload = store.get_upload(file_id)
        if upload is None:
            console.print(f"[red]Unknown file upload: {file_id}[/red]")
            raise typer.Exit(1)

        runs = store.get_runs(file_id)
        if json_output:
            data = _upload_dict(upload)
            data["row_errors"] = len(store.get_row_errors(file_id))
            data["runs"] = [_run_dict(run) for run in runs]
            _print_json(data)
        else:
            _upload_rich(store, upload, runs)
    finally:
        store.manager.close()


def _print_json(data: dict[str, Any]) -> None:
    import json

    console.print(json.dumps(data, indent=2, default=str))


def _upload_dict(upload: FileUpload) -> dict[str, Any]:
    return {
        "file_id": upload.file_id,
        "dataset_id": upload.dataset_id,
        "name": upload.name,
        "file_type": upload.file_type,
        "status": upload.status,
        "location": upload.location,
        "updated_at": upload.updated_at.isoformat(),
    }


def _run_dict(run: IngestionRun) -> dict[str, Any]:
    return {
        "job_id": run.job_id,
        "mode": run.mode,
        "status": run.status,
        "failed_stage": run.failed_stage,
        "error": run.error,
        "started_at": run.started_at.isoformat(),
        "duration_seconds": run.total_duration_seconds,
        "rows_processed": run.rows_processed,
        "stages": [
            {
                "name": c.stage_name,
                "status": c.status,
                "duration_seconds": c.duration_seconds,
                "outputs": c.outputs,
                "error": c.error,
            }
            for c in run.checkpoints
        ],
    }


def _uploads_rich(uploads: list[FileUpload]) -> None:
    if not uploads:
        console.print("[yellow]No uploads found[/yellow]")
        return

    table = RichTable(show_header=True, header_style="bold")
    table.add_column("File ID")
    table.add_column("Dataset ID")
    table.add_column("Name")
    table.add_column("Status")
    table.add_column("Updated")

    for upload in uploads:
        table.add_row(
            upload.file_id,
            upload.dataset_id,
            upload.name,
            styled_status(upload.status),
            upload.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        )

    console.print(f"\n[bold]Uploads[/bold] ({len(uploads)})\n")
    console.print(table)


def _upload_rich(store: SqlMetadataStore, upload: FileUpload, runs: list[IngestionRun]) -> None:
    console.print(f"\n[cyan]Upload:[/cyan] {upload.name} ({upload.file_id})")
    console.print(f"  Dataset:  {upload.dataset_id}")
    console.print(f"  Location: {upload.location}")
    console.print(f"  Status:   {styled_status(upload.status)}")

    table_handle = store.get_dataset_table(upload.dataset_id)
    if table_handle is not None:
        console.print(
            f"  Table:    {table_handle.table_name} on {table_handle.storage_target_id}"
        )

    error_count = len(store.get_row_errors(upload.file_id))
    if error_count:
        console.print(
            f"  [yellow]{error_count} row error(s)[/yellow] - see 'tabload errors {upload.file_id}'"
        )

    if not runs:
        console.print("\n[yellow]No ingestion runs recorded[/yellow]")
        return

    latest = runs[0]
    console.print(f"\n[bold]Latest run[/bold] {latest.job_id} ({latest.mode})")

    stage_table = RichTable(show_header=True, header_style="bold")
    stage_table.add_column("Stage")
    stage_table.add_column("Status")
    stage_table.add_column("Duration", justify="right")
    stage_table.add_column("Error")

    for checkpoint in latest.checkpoints:
        status_color = {
            "completed": "green",
            "failed": "red",
            "skipped": "yellow",
        }.get(checkpoint.status, "white")
        stage_table.add_row(
            checkpoint.stage_name,
            f"[{status_color}]{checkpoint.status}[/{status_color}]",
            f"{checkpoint.duration_seconds:.2f}s",
            checkpoint.error or "",
        )

    console.print(stage_table)
    if len(runs) > 1:
        console.print(f"\n{len(runs) - 1} earlier run(s)")
