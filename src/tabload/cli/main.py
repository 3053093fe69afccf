"""Main CLI application entry point."""

from __future__ import annotations

import typer

from tabload.cli.commands import delete, errors, ingest, status, targets

app = typer.Typer(
    name="tabload",
    help="tabload - ingest CSV files into typed, partitioned storage.",
    no_args_is_help=True,
)

# Register commands
app.command()(ingest.ingest)
app.command()(status.status)
app.command()(errors.errors)
app.command()(targets.targets)
app.command()(delete.delete)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
