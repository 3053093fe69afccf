"""Row-level CSV validation.

Produces findings in the form ``Record #N has error: <problem>`` where the
header is record #0. Findings describe the file's content and are returned
as data; only failing to read the file at all raises.
"""

from __future__ import annotations

import csv
from pathlib import Path

from tabload.core.errors import ReadError
from tabload.core.logging import get_logger, record_rows_processed

logger = get_logger(__name__)

# Stop collecting after this many findings; a broken file repeats itself
MAX_FINDINGS = 1000


def format_finding(record: int, problem: str) -> str:
    return f"Record #{record} has error: {problem}"


class CSVValidator:
    """Checks that every record parses and has the header's field count."""

    def __init__(
        self,
        delimiter: str = ",",
        encoding: str = "utf-8",
        max_findings: int = MAX_FINDINGS,
    ):
        self.delimiter = delimiter
        self.encoding = encoding
        self.max_findings = max_findings

    def validate(self, path: str | Path) -> list[str]:
        """Validate a CSV file.

        Args:
            path: File to check

        Returns:
            Findings, empty when the file is clean

        Raises:
            ReadError: The file cannot be opened or decoded, or has no header
        """
        path = Path(path)
        findings: list[str] = []
        records = 0
        field_count: int | None = None

        try:
            with open(path, newline="", encoding=self.encoding) as f:
                reader = csv.reader(f, delimiter=self.delimiter, strict=True)
                record = 0
                while len(findings) < self.max_findings:
                    try:
                        row = next(reader)
                    except StopIteration:
                        break
                    except csv.Error as e:
                        # The reader resumes on the following line
                        findings.append(format_finding(record, str(e)))
                        record += 1
                        continue

                    if not row:
                        continue

                    if field_count is None:
                        field_count = len(row)
                    elif len(row) != field_count:
                        findings.append(
                            format_finding(
                                record,
                                f"wrong number of fields (got {len(row)}, expected {field_count})",
                            )
                        )
                    else:
                        records += 1
                    record += 1
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"cannot validate {path.name}: {e}") from e

        if field_count is None:
            raise ReadError(f"cannot validate {path.name}: no header row")

        record_rows_processed(records)
        logger.debug("csv_validated", file=path.name, records=records, findings=len(findings))
        return findings
