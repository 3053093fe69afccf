"""Delete command - remove a dataset and its stored table."""

from __future__ import annotations

from typing import Annotated

import typer

from tabload.cli.common import console, get_store
from tabload.core.config import get_settings
from tabload.core.errors import IngestionError


def delete(
    dataset_id: Annotated[
        str,
        typer.Argument(help="Dataset id to delete"),
    ],
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Skip confirmation prompt",
        ),
    ] = False,
) -> None:
    """Delete a dataset: its table, uploads, findings, schema and run history."""
    from tabload.datastores import DuckDBStorageClient, DuckDBTargets
    from tabload.pipeline.maintenance import delete_dataset

    store = get_store()
    try:
        dataset = store.get_dataset(dataset_id)
        if dataset is None:
            console.print(f"[red]Unknown dataset: {dataset_id}[/red]")
            raise typer.Exit(1)

        uploads = store.list_uploads(dataset_id)
        table = store.get_dataset_table(dataset_id)

        console.print(f"\n[bold]Dataset:[/bold] {dataset.name} ({dataset_id})")
        console.print(f"  Uploads: {len(uploads)}")
        if table is not None:
            console.print(f"  Table:   {table.table_name} on {table.storage_target_id}")

        if not force:
            confirm = typer.confirm("\nDelete this dataset?")
            if not confirm:
                console.print("[yellow]Cancelled[/yellow]")
                raise typer.Exit(0)

        storage = DuckDBStorageClient(
            DuckDBTargets.from_config(get_settings().storage_targets_path)
        )
        try:
            delete_dataset(dataset_id, store, storage)
        except IngestionError as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(1) from e
    finally:
        store.manager.close()

    console.print(f"[green]Deleted dataset {dataset_id}[/green]")
