"""CLI for the tabload ingestion pipeline.

Usage:
    tabload ingest sales.csv
    tabload ingest more_sales.csv --append <dataset-id>
    tabload status <file-id>
    tabload errors <file-id>
    tabload targets
    tabload delete <dataset-id>

Environment:
    Loads .env file from current directory if present.
    Settings use the TABLOAD_ prefix (see tabload.core.config).
"""

from tabload.cli.main import app, main

__all__ = ["app", "main"]
