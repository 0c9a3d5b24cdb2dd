"""Default diagnostic wording."""

from __future__ import annotations

from typing import Optional

from .dates import CalendarDate

DEFAULT_TARGET = "code block"


def review_message(review: CalendarDate, target: Optional[str] = None) -> str:
    return (
        f"Code '{target or DEFAULT_TARGET}' past review date ({review}): "
        "consider updating or removing this code"
    )


def expired_message(expiry: CalendarDate, target: Optional[str] = None) -> str:
    return (
        f"Code '{target or DEFAULT_TARGET}' has expired (after {expiry}): "
        "consider removing this code"
    )


def configuration_message(error: Exception) -> str:
    return f"invalid bestbefore annotation: {error}"
