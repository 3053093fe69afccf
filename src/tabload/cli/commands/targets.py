"""Targets command - list storage targets and their load."""

from __future__ import annotations

from rich.table import Table as RichTable

from tabload.cli.common import JsonFlag, console
from tabload.core.config import get_settings


def targets(json_output: JsonFlag = False) -> None:
    """List the configured storage targets with their dataset counts.

    New datasets are placed on the target with the fewest datasets.
    """
    from tabload.core.errors import NoCandidates
    from tabload.datastores import DuckDBStorageDiscovery, DuckDBTargets, select_least_loaded

    configured = DuckDBTargets.from_config(get_settings().storage_targets_path)
    candidates = DuckDBStorageDiscovery(configured).list_candidates()

    try:
        next_target: str | None = select_least_loaded(candidates).id
    except NoCandidates:
        next_target = None

    if json_output:
        import json

        data = {
            "targets": [
                {
                    "id": c.id,
                    "datasets": c.current_dataset_count,
                    "path": c.connection_info.get("path"),
                }
                for c in candidates
            ],
            "next": next_target,
        }
        console.print(json.dumps(data, indent=2))
        return

    if not candidates:
        console.print(
            f"[yellow]No storage targets configured in {get_settings().storage_targets_path}"
            "[/yellow]"
        )
        return

    table = RichTable(show_header=True, header_style="bold")
    table.add_column("Target")
    table.add_column("Datasets", justify="right")
    table.add_column("Path")

    for candidate in candidates:
        marker = " [green]← next[/green]" if candidate.id == next_target else ""
        table.add_row(
            f"{candidate.id}{marker}",
            str(candidate.current_dataset_count),
            str(candidate.connection_info.get("path", "")),
        )

    console.print(table)
