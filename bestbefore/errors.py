"""Error and warning taxonomy.

Two families never overlap:

- :class:`ConfigurationError` means the annotation (or the environment it is
  evaluated in) is malformed. It is fatal regardless of the current date.
- :class:`CodeExpiredError` / :class:`ReviewOverdueWarning` are the intended
  products of a well-formed policy whose dates have passed.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .dates import CalendarDate

__all__ = [
    "AnnotationArgumentError",
    "BestBeforeError",
    "CodeExpiredError",
    "ConfigurationError",
    "DateParseError",
    "ExpiryNotAfterReviewError",
    "MalformedDateError",
    "MissingDateError",
    "MonthOutOfRangeError",
    "OverrideDateError",
    "ReviewOverdueWarning",
    "SettingsError",
]


class BestBeforeError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(BestBeforeError, ValueError):
    """The annotation or its environment is malformed; not an expiry."""


class DateParseError(ConfigurationError):
    """A ``MM.YYYY`` value could not be parsed."""

    reason = "invalid date"

    def __init__(self, value: object, *, field: str = "date", detail: Optional[str] = None) -> None:
        self.value = value
        self.field = field
        self.detail = detail
        message = f"Invalid {field} {value!r}: {self.reason}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class MalformedDateError(DateParseError):
    """Wrong shape, non-numeric, or non-positive year."""

    reason = "expected format 'MM.YYYY'"


class MonthOutOfRangeError(DateParseError):
    """The month component is outside 1-12."""

    reason = "month must be a number from 1-12"


class ExpiryNotAfterReviewError(ConfigurationError):
    """``expires`` is not strictly after the review date."""

    def __init__(self, review: "CalendarDate", expiry: "CalendarDate") -> None:
        self.review = review
        self.expiry = expiry
        super().__init__(
            f"Invalid date: expiration date ({expiry}) must be after review date ({review})"
        )


class MissingDateError(ConfigurationError):
    """Neither a review date nor ``expires`` was supplied."""

    def __init__(self) -> None:
        super().__init__(
            "Missing parameters: provide a review date, an 'expires' date, or both"
        )


class AnnotationArgumentError(ConfigurationError):
    """The annotation call itself has unusable arguments."""


class OverrideDateError(ConfigurationError):
    """The current-date override variable holds a malformed value."""

    def __init__(self, variable: str, cause: DateParseError) -> None:
        self.variable = variable
        self.cause = cause
        super().__init__(
            f"Invalid current-date override ${variable}={cause.value!r}: {cause.reason}"
        )


class SettingsError(ConfigurationError):
    """A settings file could not be read or contains unknown keys."""


class CodeExpiredError(BestBeforeError, RuntimeError):
    """Raised for a hard-expired unit; aborts loading that unit."""

    def __init__(self, message: str, *, target: Optional[str] = None) -> None:
        self.target = target
        super().__init__(message)


class ReviewOverdueWarning(UserWarning):
    """Issued for units past their review date but not yet expired."""
