"""CSV row source and validator."""

from tabload.sources.csv.reader import CSVRowSource
from tabload.sources.csv.validator import CSVValidator

__all__ = ["CSVRowSource", "CSVValidator"]
