"""Single-pass schema inference over a row stream.

Every field of every row is narrowed against its column's current type
(see lattice.narrow). The whole stream is consumed; there is no early exit
once all columns have collapsed to STRING.
"""

from __future__ import annotations

import time
from collections.abc import Sequence
from typing import TYPE_CHECKING

from tabload.analysis.typing.lattice import narrow
from tabload.core.errors import ReadError, SchemaMismatch
from tabload.core.logging import get_logger, record_operation_timing, record_rows_processed
from tabload.core.models import ColumnSchema, DataType, aggregation_for, new_uid

if TYPE_CHECKING:
    from tabload.pipeline.interfaces import RowSource

logger = get_logger(__name__)


def seed_columns(header: Sequence[str]) -> list[ColumnSchema]:
    """Build the initial schema for a file that has none yet.

    Names are positional; the header text is kept as the raw sample.
    """
    return [
        ColumnSchema(
            uid=new_uid(),
            name=str(index),
            position=index,
            raw_sample=text,
            data_type=DataType.STRING,
        )
        for index, text in enumerate(header)
    ]


class SchemaInferencer:
    """Derives a column schema from raw delimited rows."""

    def infer(
        self,
        source: RowSource,
        existing: Sequence[ColumnSchema] = (),
    ) -> list[ColumnSchema]:
        """Scan ``source`` once and return the refined schema.

        Args:
            source: Row source positioned before the header
            existing: Schema persisted by a previous run, if any

        Returns:
            The columns, ordered by position, with types narrowed in place

        Raises:
            SchemaMismatch: The header cannot be read or disagrees with ``existing``
            ReadError: A row after the header cannot be read
        """
        start = time.time()

        try:
            header = source.read_header()
        except EOFError as e:
            raise SchemaMismatch("end of input reached before the header could be read") from e
        except (ReadError, OSError) as e:
            raise SchemaMismatch(f"header could not be read: {e}") from e

        if existing:
            # Positions are authoritative once a schema exists; header text is ignored
            columns = sorted(
                (column.model_copy() for column in existing), key=lambda c: c.position
            )
            if len(columns) != len(header):
                raise SchemaMismatch(
                    f"file has {len(header)} fields but the dataset schema has {len(columns)}"
                )
        else:
            columns = seed_columns(header)

        # Indices of columns a non-empty value pushed down to STRING
        collapsed: set[int] = set()

        rows = 0
        while True:
            try:
                record = source.read_row()
            except OSError as e:
                raise ReadError(f"row {rows + 1} could not be read: {e}", rows + 1) from e

            if record is None:
                break
            rows += 1

            if len(record) != len(columns):
                raise ReadError(
                    f"row {rows} has {len(record)} fields, expected {len(columns)}", rows
                )

            for index, value in enumerate(record):
                column = columns[index]
                if index not in collapsed:
                    data_type, date_format = narrow(value, column.data_type, column.date_format)
                    if value and data_type == DataType.STRING:
                        collapsed.add(index)
                    column.data_type = data_type
                    column.date_format = date_format if data_type == DataType.DATE else None
                column.aggregation_fn = aggregation_for(column.data_type)

        record_rows_processed(rows)
        record_operation_timing("schema_inference", time.time() - start)
        logger.debug(
            "schema_inferred",
            rows=rows,
            columns=len(columns),
            collapsed=len(collapsed),
        )
        return columns
