"""Type narrowing rules for column inference.

A column starts as STRING (the open hypothesis) and every observed value
either confirms or narrows its type. Numeric hypotheses only ever widen
(INT -> FLOAT) or collapse to STRING; a DATE column keeps the layout it first
matched and collapses to STRING on the first value that does not fit it.

Date formats are identified by reference layouts (the rendering of
2 January 2006), which is also how they are stored on ColumnSchema.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import date

from tabload.core.models import DataType

_MONTHS = {
    name: index
    for index, name in enumerate(
        ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"],
        start=1,
    )
}

_INT_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)
_FLOAT_PATTERN = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?|inf(?:inity)?|nan)",
    re.ASCII | re.IGNORECASE,
)
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass
class DateLayout:
    """A supported date format.

    ``pattern`` must capture the year, month and day groups; months are either
    numeric or three-letter English abbreviations.
    """

    layout: str
    pattern: str
    strptime_format: str

    _regex: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._regex = re.compile(self.pattern, re.ASCII | re.IGNORECASE)

    def parse(self, value: str) -> date | None:
        """Parse value with this layout.

        Returns:
            The date, or None if the value does not match or is not a real date
        """
        if not value:
            return None
        match = self._regex.fullmatch(value)
        if match is None:
            return None

        month_text = match.group("month")
        month = _MONTHS.get(month_text.lower()) if month_text.isalpha() else int(month_text)
        if month is None:
            return None

        try:
            return date(int(match.group("year")), month, int(match.group("day")))
        except ValueError:
            return None

    def matches(self, value: str) -> bool:
        return self.parse(value) is not None


# Order matters: the first layout that parses wins.
SUPPORTED_DATE_LAYOUTS: tuple[DateLayout, ...] = (
    DateLayout(
        layout="2006-Jan-02",
        pattern=r"(?P<year>\d{4})-(?P<month>[a-z]{3})-(?P<day>\d{2})",
        strptime_format="%Y-%b-%d",
    ),
    DateLayout(
        layout="01/02/2006",
        pattern=r"(?P<month>\d{2})/(?P<day>\d{2})/(?P<year>\d{4})",
        strptime_format="%m/%d/%Y",
    ),
    DateLayout(
        layout="1/02/2006",
        pattern=r"(?P<month>\d{1,2})/(?P<day>\d{2})/(?P<year>\d{4})",
        strptime_format="%-m/%d/%Y",
    ),
    DateLayout(
        layout="1/2/2006",
        pattern=r"(?P<month>\d{1,2})/(?P<day>\d{1,2})/(?P<year>\d{4})",
        strptime_format="%-m/%-d/%Y",
    ),
)

_LAYOUTS_BY_NAME = {layout.layout: layout for layout in SUPPORTED_DATE_LAYOUTS}


def get_date_layout(name: str) -> DateLayout | None:
    """Look up a supported layout by its reference name."""
    return _LAYOUTS_BY_NAME.get(name)


def detect_date_format(value: str) -> str | None:
    """Return the first supported layout that parses value, if any."""
    for layout in SUPPORTED_DATE_LAYOUTS:
        if layout.matches(value):
            return layout.layout
    return None


def parses_as_int(value: str) -> bool:
    """Check for a base-10 64-bit integer literal.

    Surrounding whitespace and a single trailing '.' are ignored ("42." is an
    integer).
    """
    text = value.strip()
    if text.endswith("."):
        text = text[:-1]
    if not _INT_PATTERN.fullmatch(text):
        return False
    return _INT64_MIN <= int(text) <= _INT64_MAX


def parses_as_float(value: str) -> bool:
    """Check for a floating-point literal after trimming whitespace."""
    text = value.strip()
    # ASCII digits only; float() also takes separators and non-Latin digits
    if not _FLOAT_PATTERN.fullmatch(text):
        return False
    # Out-of-range values overflow to inf
    return not math.isinf(float(text)) or "inf" in text.lower()


def narrow(
    value: str,
    current: DataType,
    date_format: str | None = None,
) -> tuple[DataType, str | None]:
    """Narrow a column's hypothesized type with one observed value.

    Args:
        value: Raw text of the field
        current: The column's current type
        date_format: Layout already matched by a DATE column

    Returns:
        (new type, date layout); the layout is only set for DATE
    """
    # Missing values never falsify a hypothesis
    if not value:
        return current, date_format

    if current == DataType.DATE:
        if date_format is None:
            matched = detect_date_format(value)
            return (DataType.DATE, matched) if matched else (DataType.STRING, None)
        layout = get_date_layout(date_format)
        if layout is not None and layout.matches(value):
            return DataType.DATE, date_format
        return DataType.STRING, None

    if current == DataType.FLOAT:
        if parses_as_float(value):
            return DataType.FLOAT, None
        return DataType.STRING, None

    if current == DataType.INT:
        if parses_as_int(value):
            return DataType.INT, None
        if parses_as_float(value):
            return DataType.FLOAT, None
        return DataType.STRING, None

    # STRING: open hypothesis, try everything
    matched = detect_date_format(value)
    if matched:
        return DataType.DATE, matched
    if parses_as_int(value):
        return DataType.INT, None
    if parses_as_float(value):
        return DataType.FLOAT, None
    return DataType.STRING, None
