"""Column type inference.

- lattice: pure narrowing rules and date layout detection
- inference: single-pass schema inference over a row stream
"""

from tabload.analysis.typing.inference import SchemaInferencer, seed_columns
from tabload.analysis.typing.lattice import (
    SUPPORTED_DATE_LAYOUTS,
    DateLayout,
    detect_date_format,
    get_date_layout,
    narrow,
)

__all__ = [
    "SUPPORTED_DATE_LAYOUTS",
    "DateLayout",
    "SchemaInferencer",
    "detect_date_format",
    "get_date_layout",
    "narrow",
    "seed_columns",
]
