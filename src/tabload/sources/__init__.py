"""Readers and validators for uploaded files.

Only delimited text (CSV) is supported; the type is decided by the file
extension.
"""

from __future__ import annotations

from pathlib import Path

from tabload.core.errors import UnsupportedFormat

FILE_TYPE_CSV = "CSV"

_EXTENSIONS = {
    ".csv": FILE_TYPE_CSV,
}


def resolve_file_type(path: str | Path) -> str:
    """Return the upload type for a file name.

    Raises:
        UnsupportedFormat: The extension is not a supported tabular format
    """
    suffix = Path(path).suffix.lower()
    file_type = _EXTENSIONS.get(suffix)
    if file_type is None:
        raise UnsupportedFormat(
            f"unsupported file type {suffix or '(none)'!r} for {Path(path).name}"
        )
    return file_type


__all__ = ["FILE_TYPE_CSV", "resolve_file_type"]
