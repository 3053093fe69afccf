"""Bulk loading of CSV files into DuckDB storage targets.

The file is read with every column as VARCHAR and converted with TRY_CAST /
TRY_STRPTIME per column, so a value that does not fit the inferred type is
stored as NULL instead of failing the load. Records that do not parse at all
(already reported as validation findings) are skipped.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from pathlib import Path

import duckdb

from tabload.analysis.typing.lattice import SUPPORTED_DATE_LAYOUTS, get_date_layout
from tabload.core.errors import StorageError
from tabload.core.logging import (
    get_logger,
    increment_db_write,
    record_operation_timing,
    record_rows_processed,
)
from tabload.core.models import ColumnSchema, DataType, TableHandle
from tabload.datastores.targets import DuckDBTargets

logger = get_logger(__name__)

SQL_TYPES = {
    DataType.STRING: "VARCHAR",
    DataType.INT: "BIGINT",
    DataType.FLOAT: "DOUBLE",
    DataType.DATE: "DATE",
}


def quote_identifier(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


def quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _staging_name(position: int) -> str:
    return f"c{position}"


def cast_expression(column: ColumnSchema, source: str) -> str:
    """SQL converting a raw VARCHAR field into the column's type."""
    value = f"NULLIF(trim({source}), '')"

    if column.data_type == DataType.INT:
        # "42." is an integer literal
        return f"TRY_CAST(regexp_replace({value}, '\\.$', '') AS BIGINT)"
    if column.data_type == DataType.FLOAT:
        return f"TRY_CAST({value} AS DOUBLE)"
    if column.data_type == DataType.DATE:
        layout = get_date_layout(column.date_format) if column.date_format else None
        layouts = [layout] if layout else list(SUPPORTED_DATE_LAYOUTS)
        parses = [
            f"TRY_STRPTIME({value}, {quote_literal(candidate.strptime_format)})"
            for candidate in layouts
        ]
        parsed = parses[0] if len(parses) == 1 else f"COALESCE({', '.join(parses)})"
        return f"CAST({parsed} AS DATE)"
    return source


class DuckDBStorageClient:
    """Storage client writing dataset tables into DuckDB target files."""

    def __init__(
        self,
        targets: DuckDBTargets,
        delimiter: str = ",",
        encoding: str = "utf-8",
    ):
        self.targets = targets
        self.delimiter = delimiter
        self.encoding = encoding

    def _read_csv_sql(self, source_path: Path, field_count: int) -> str:
        column_types = ", ".join(f"'{_staging_name(i)}': 'VARCHAR'" for i in range(field_count))
        options = [
            quote_literal(str(source_path)),
            f"columns = {{{column_types}}}",
            "header = true",
            f"delim = {quote_literal(self.delimiter)}",
            "quote = '\"'",
            "auto_detect = false",
            # Malformed records are reported by validation and skipped here
            "ignore_errors = true",
        ]
        if self.encoding.lower().replace("_", "-") not in ("utf-8", "utf8"):
            options.append(f"encoding = {quote_literal(self.encoding)}")
        return f"read_csv({', '.join(options)})"

    def bulk_load(
        self,
        source_path: str | Path,
        table: TableHandle,
        columns: Sequence[ColumnSchema],
        *,
        append: bool,
        create_table: bool,
    ) -> int:
        """Load a CSV file into the dataset's table.

        Args:
            source_path: The uploaded file
            table: Table identity on its storage target
            columns: Current schema, in file order
            append: Add rows to the existing data; otherwise the table is
                recreated from ``columns`` and holds only this file's rows
            create_table: Create the table from ``columns`` before loading

        Returns:
            Number of rows inserted

        Raises:
            StorageError: The target is unknown or the load failed
        """
        if not columns:
            raise StorageError(f"cannot load {table.table_name}: empty schema")

        ordered = sorted(columns, key=lambda c: c.position)
        table_sql = quote_identifier(table.table_name)
        target_names = ", ".join(quote_identifier(c.name) for c in ordered)
        selects = ", ".join(
            cast_expression(c, _staging_name(index)) for index, c in enumerate(ordered)
        )
        insert_sql = (
            f"INSERT INTO {table_sql} ({target_names}) "
            f"SELECT {selects} FROM {self._read_csv_sql(Path(source_path), len(ordered))}"
        )

        start = time.time()
        with self.targets.connect(table.storage_target_id) as conn:
            try:
                conn.begin()
                if create_table or not append:
                    # A replacing load takes the schema of the latest inference
                    definitions = ", ".join(
                        f"{quote_identifier(c.name)} {SQL_TYPES[c.data_type]}" for c in ordered
                    )
                    conn.execute(f"CREATE OR REPLACE TABLE {table_sql} ({definitions})")
                # INSERT reports the number of rows it wrote
                count_row = conn.execute(insert_sql).fetchone()
                conn.commit()
            except duckdb.Error as e:
                conn.rollback()
                raise StorageError(f"bulk load into {table.table_name} failed: {e}") from e

        inserted = int(count_row[0]) if count_row else 0
        increment_db_write()
        record_rows_processed(inserted)
        record_operation_timing("bulk_load", time.time() - start)
        logger.info(
            "bulk_load_completed",
            table=table.table_name,
            target=table.storage_target_id,
            append=append,
            create_table=create_table,
            rows=inserted,
        )
        return inserted

    def delete_table(self, table: TableHandle) -> None:
        """Drop a dataset's table from its storage target."""
        with self.targets.connect(table.storage_target_id) as conn:
            try:
                conn.execute(f"DROP TABLE IF EXISTS {quote_identifier(table.table_name)}")
            except duckdb.Error as e:
                raise StorageError(f"cannot drop {table.table_name}: {e}") from e
        increment_db_write()
        logger.info("table_deleted", table=table.table_name, target=table.storage_target_id)
