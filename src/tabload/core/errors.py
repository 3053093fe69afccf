"""Error taxonomy for the ingestion pipeline.

Collaborator failures are translated into these types at the collaborator
boundary (``raise ... from e``); stages turn them into failed results.
"""

from __future__ import annotations


class IngestionError(Exception):
    """Base class for all ingestion errors."""


class ReadError(IngestionError):
    """A row after the header could not be read."""

    def __init__(self, message: str, row_number: int | None = None):
        super().__init__(message)
        self.row_number = row_number


class SchemaMismatch(IngestionError):
    """The header is unreadable or its field count disagrees with the schema."""


class NoCandidates(IngestionError):
    """Storage discovery returned no storage targets."""


class StorageError(IngestionError):
    """Bulk load, table creation or table deletion failed."""


class MetadataError(IngestionError):
    """Reading or writing the metadata store failed."""


class UnsupportedFormat(IngestionError):
    """The uploaded file is not of a supported tabular format."""


class StageFailed(IngestionError):
    """A pipeline stage failed; wraps the original error with the stage name."""

    def __init__(self, stage: str, cause: BaseException | str):
        self.stage = stage
        self.cause = cause
        super().__init__(f"{stage}: {cause}")
