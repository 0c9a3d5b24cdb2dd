"""Month-granular calendar dates in the ``MM.YYYY`` annotation format."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date

from .errors import MalformedDateError, MonthOutOfRangeError

__all__ = ["CalendarDate", "DATE_FORMAT", "format_date", "parse_date"]

DATE_FORMAT = "MM.YYYY"

_DATE_RE = re.compile(r"([0-9]{2})\.([0-9]+)", re.ASCII)


@dataclass(frozen=True, order=True, slots=True)
class CalendarDate:
    """First day of a month; ordered by year, then month."""

    year: int
    month: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise MonthOutOfRangeError(self.month, field="month")
        if self.year < 1:
            raise MalformedDateError(self.year, field="year", detail="year must be positive")

    @property
    def day(self) -> int:
        return 1

    @classmethod
    def from_date(cls, value: date) -> "CalendarDate":
        """Truncate a :class:`datetime.date` (or datetime) to its month."""
        return cls(year=value.year, month=value.month)

    def to_date(self) -> date:
        return date(self.year, self.month, 1)

    def __str__(self) -> str:
        return format_date(self)


def format_date(value: CalendarDate) -> str:
    """Render *value* back into ``MM.YYYY``."""
    return f"{value.month:02d}.{value.year:04d}"


def parse_date(text: object, *, field: str = "date") -> CalendarDate:
    """Parse a strict ``MM.YYYY`` string.

    *field* names the argument being parsed (``review``, ``expires``, the
    override variable) and is carried by the raised error so diagnostics can
    say which value is wrong.

    Raises :class:`MalformedDateError` for anything that is not two ASCII
    digits, a dot, and one or more ASCII digits, or whose year is zero;
    :class:`MonthOutOfRangeError` when the month is outside 1-12.
    """
    if not isinstance(text, str):
        raise MalformedDateError(text, field=field, detail=f"got {type(text).__name__}")
    match = _DATE_RE.fullmatch(text)
    if match is None:
        raise MalformedDateError(text, field=field)
    month = int(match.group(1))
    try:
        year = int(match.group(2))
    except ValueError as exc:
        # beyond the interpreter's integer string conversion limit
        raise MalformedDateError(text, field=field, detail="year is too long") from exc
    if not 1 <= month <= 12:
        raise MonthOutOfRangeError(text, field=field, detail=f"got {month}")
    if year < 1:
        raise MalformedDateError(text, field=field, detail="year must be positive")
    return CalendarDate(year=year, month=month)
