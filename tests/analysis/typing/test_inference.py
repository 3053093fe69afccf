"""Tests for single-pass schema inference."""

import pytest

from tabload.analysis.typing import SchemaInferencer, seed_columns
from tabload.core.errors import ReadError, SchemaMismatch
from tabload.core.models import AggregationFn, ColumnSchema, DataType


class ListRowSource:
    """In-memory row source."""

    def __init__(self, header, rows=(), fail_at=None):
        self.header = header
        self.rows = list(rows)
        self.fail_at = fail_at
        self.position = 0
        self.closed = False

    def read_header(self):
        if self.header is None:
            raise EOFError("empty")
        return list(self.header)

    def read_row(self):
        if self.fail_at is not None and self.position == self.fail_at:
            raise OSError("disk went away")
        if self.position >= len(self.rows):
            return None
        row = self.rows[self.position]
        self.position += 1
        return list(row)

    def close(self):
        self.closed = True


def infer(header, rows, existing=()):
    return SchemaInferencer().infer(ListRowSource(header, rows), existing)


class TestSeedColumns:
    def test_positional_names(self):
        columns = seed_columns(["id", "amount"])
        assert [c.name for c in columns] == ["0", "1"]
        assert [c.position for c in columns] == [0, 1]
        assert [c.raw_sample for c in columns] == ["id", "amount"]
        assert all(c.data_type == DataType.STRING for c in columns)
        assert len({c.uid for c in columns}) == 2


class TestSchemaInferencer:
    """Tests for SchemaInferencer.infer."""

    def test_int_and_collapsed_float(self):
        columns = infer(["a", "b"], [["1", "3.5"], ["2", "x"]])

        assert columns[0].data_type == DataType.INT
        assert columns[0].aggregation_fn == AggregationFn.SUM
        assert columns[1].data_type == DataType.STRING
        assert columns[1].aggregation_fn == AggregationFn.COUNT

    def test_date_column_collapses_on_non_date(self):
        rows = [["2006-Jan-02"]] * 5 + [["not-a-date"]]
        columns = infer(["when"], rows)

        assert columns[0].data_type == DataType.STRING
        assert columns[0].date_format is None

    def test_date_column_keeps_format(self):
        columns = infer(["when"], [["01/02/2006"], ["12/31/2020"], [""]])

        assert columns[0].data_type == DataType.DATE
        assert columns[0].date_format == "01/02/2006"
        assert columns[0].aggregation_fn == AggregationFn.COUNT

    def test_int_widens_to_float(self):
        columns = infer(["n"], [["1"], ["2.5"], ["3"]])
        assert columns[0].data_type == DataType.FLOAT
        assert columns[0].aggregation_fn == AggregationFn.SUM

    def test_collapsed_column_never_recovers(self):
        columns = infer(["n"], [["x"], ["1"], ["2"]])
        assert columns[0].data_type == DataType.STRING

    def test_empty_values_do_not_collapse(self):
        columns = infer(["n"], [[""], ["4"], [""]])
        assert columns[0].data_type == DataType.INT

    def test_header_only_file_stays_string(self):
        columns = infer(["a", "b"], [])
        assert [c.data_type for c in columns] == [DataType.STRING, DataType.STRING]

    def test_existing_schema_is_refined_in_place(self):
        existing = [
            ColumnSchema(uid="u1", name="amount", position=1),
            ColumnSchema(uid="u0", name="id", position=0),
        ]
        columns = infer(["x", "y"], [["7", "1.5"]], existing)

        assert [c.uid for c in columns] == ["u0", "u1"]
        assert [c.name for c in columns] == ["id", "amount"]
        assert columns[0].data_type == DataType.INT
        assert columns[1].data_type == DataType.FLOAT
        # The caller's objects are untouched
        assert existing[0].data_type == DataType.STRING

    def test_empty_file_is_schema_mismatch(self):
        with pytest.raises(SchemaMismatch):
            infer(None, [])

    def test_header_length_mismatch(self):
        existing = [ColumnSchema(name="0", position=0)]
        with pytest.raises(SchemaMismatch):
            infer(["a", "b"], [], existing)

    def test_unreadable_row_is_read_error(self):
        source = ListRowSource(["a"], [["1"], ["2"]], fail_at=1)
        with pytest.raises(ReadError) as exc_info:
            SchemaInferencer().infer(source)
        assert exc_info.value.row_number == 2

    def test_short_row_is_read_error(self):
        with pytest.raises(ReadError):
            infer(["a", "b"], [["1", "2"], ["3"]])
