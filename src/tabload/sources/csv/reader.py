"""Forward-only CSV row source."""

from __future__ import annotations

import csv
from collections.abc import Iterator
from pathlib import Path
from typing import IO, Any

from tabload.core.errors import ReadError


class CSVRowSource:
    """Reads a CSV file as rows of string fields.

    The file is opened on the first read. Every row after the header must
    have as many fields as the header. Blank lines are skipped.

    Usage:
        with CSVRowSource(path) as source:
            header = source.read_header()
            while (row := source.read_row()) is not None:
                ...
    """

    def __init__(self, path: str | Path, delimiter: str = ",", encoding: str = "utf-8"):
        self.path = Path(path)
        self.delimiter = delimiter
        self.encoding = encoding

        self._file: IO[str] | None = None
        self._reader: Iterator[list[str]] | None = None
        self._field_count: int | None = None
        self._record = 0

    def _open(self) -> Iterator[list[str]]:
        if self._reader is None:
            try:
                self._file = open(self.path, newline="", encoding=self.encoding)
            except OSError as e:
                raise ReadError(f"cannot open {self.path.name}: {e}") from e
            self._reader = csv.reader(self._file, delimiter=self.delimiter, strict=True)
        return self._reader

    def _next_record(self) -> list[str] | None:
        reader = self._open()
        while True:
            try:
                record = next(reader)
            except StopIteration:
                return None
            except (csv.Error, UnicodeDecodeError, OSError) as e:
                raise ReadError(
                    f"record {self._record + 1} of {self.path.name}: {e}", self._record + 1
                ) from e
            self._record += 1
            if record:
                return record

    def read_header(self) -> list[str]:
        """Read the header row.

        Raises:
            EOFError: The file has no rows
            ReadError: The file cannot be opened or parsed
        """
        if self._field_count is not None:
            raise ReadError("header already read")
        record = self._next_record()
        if record is None:
            raise EOFError(f"{self.path.name} is empty")
        self._field_count = len(record)
        return record

    def read_row(self) -> list[str] | None:
        """Read the next row, or None at end of input."""
        if self._field_count is None:
            self.read_header()
        record = self._next_record()
        if record is None:
            return None
        if len(record) != self._field_count:
            raise ReadError(
                f"record {self._record} of {self.path.name} has {len(record)} fields, "
                f"expected {self._field_count}",
                self._record,
            )
        return record

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
        self._file = None
        self._reader = None

    def __enter__(self) -> CSVRowSource:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
