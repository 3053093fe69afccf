"""Tests for the CSV row source."""

import pytest

from tabload.core.errors import ReadError
from tabload.sources.csv import CSVRowSource


class TestCSVRowSource:
    def test_reads_header_and_rows(self, write_csv):
        path = write_csv('id,name\n1,"Smith, J"\n2,Lee\n')

        with CSVRowSource(path) as source:
            assert source.read_header() == ["id", "name"]
            assert source.read_row() == ["1", "Smith, J"]
            assert source.read_row() == ["2", "Lee"]
            assert source.read_row() is None

    def test_read_row_reads_header_first(self, write_csv):
        path = write_csv("a,b\n1,2\n")
        with CSVRowSource(path) as source:
            assert source.read_row() == ["1", "2"]

    def test_blank_lines_are_skipped(self, write_csv):
        path = write_csv("a,b\n\n1,2\n\n")
        with CSVRowSource(path) as source:
            source.read_header()
            assert source.read_row() == ["1", "2"]
            assert source.read_row() is None

    def test_custom_delimiter(self, write_csv):
        path = write_csv("a;b\n1;2\n")
        with CSVRowSource(path, delimiter=";") as source:
            assert source.read_header() == ["a", "b"]
            assert source.read_row() == ["1", "2"]

    def test_empty_file_raises_eof(self, write_csv):
        path = write_csv("")
        with CSVRowSource(path) as source, pytest.raises(EOFError):
            source.read_header()

    def test_wrong_field_count(self, write_csv):
        path = write_csv("a,b\n1,2\n3\n")
        with CSVRowSource(path) as source:
            source.read_header()
            source.read_row()
            with pytest.raises(ReadError) as exc_info:
                source.read_row()
        assert exc_info.value.row_number == 3

    def test_missing_file(self, tmp_path):
        source = CSVRowSource(tmp_path / "missing.csv")
        with pytest.raises(ReadError):
            source.read_header()

    def test_close_is_idempotent(self, write_csv):
        source = CSVRowSource(write_csv("a\n1\n"))
        source.read_header()
        source.close()
        source.close()
