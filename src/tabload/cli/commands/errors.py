"""Errors command - show row-level validation findings of an upload."""

from __future__ import annotations

from typing import Annotated

import typer

from tabload.cli.common import JsonFlag, console, get_store


def errors(
    file_id: Annotated[
        str,
        typer.Argument(help="File id of the upload"),
    ],
    limit: Annotated[
        int | None,
        typer.Option(
            "--limit",
            "-l",
            help="Show at most this many findings",
        ),
    ] = None,
    json_output: JsonFlag = False,
) -> None:
    """Show the row-level findings recorded when an upload was validated.

    Findings do not fail an ingestion; the rows they describe are skipped
    when the file is loaded.
    """
    store = get_store()
    try:
        if store.get_upload(file_id) is None:
            console.print(f"[red]Unknown file upload: {file_id}[/red]")
            raise typer.Exit(1)
        findings = store.get_row_errors(file_id)
    finally:
        store.manager.close()

    if json_output:
        import json

        console.print(json.dumps({"file_id": file_id, "row_errors": findings}, indent=2))
        return

    if not findings:
        console.print("[green]No row errors recorded[/green]")
        return

    shown = findings[:limit] if limit else findings
    console.print(f"\n[bold]Row errors[/bold] ({len(findings)})\n")
    for finding in shown:
        console.print(f"  - {finding}")
    if len(shown) < len(findings):
        console.print(f"\n  ... and {len(findings) - len(shown)} more")
