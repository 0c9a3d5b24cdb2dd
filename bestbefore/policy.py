"""Expiration policies and their evaluation against a month."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from . import messages
from .dates import CalendarDate, parse_date
from .errors import ExpiryNotAfterReviewError, MissingDateError

__all__ = ["Decision", "DecisionKind", "Policy", "evaluate", "validate_policy"]

LOGGER = logging.getLogger("bestbefore.policy")


def validate_policy(review: CalendarDate, expiry: Optional[CalendarDate]) -> None:
    """Raise :class:`ExpiryNotAfterReviewError` unless *expiry* is strictly later."""
    if expiry is not None and not expiry > review:
        raise ExpiryNotAfterReviewError(review, expiry)


@dataclass(frozen=True)
class Policy:
    """Review-by date, optional hard expiry and optional custom wording.

    ``expires_only`` marks a policy declared with ``expires`` alone; its review
    date mirrors the expiry so it goes straight from compliant to expired.
    """

    review_date: CalendarDate
    expiry_date: Optional[CalendarDate] = None
    custom_message: Optional[str] = None
    expires_only: bool = False

    def __post_init__(self) -> None:
        if self.expires_only:
            if self.expiry_date is None or self.expiry_date != self.review_date:
                raise ValueError("expires_only policies must use the expiry date as review date")
            return
        validate_policy(self.review_date, self.expiry_date)

    @classmethod
    def from_arguments(
        cls,
        review: Optional[str] = None,
        *,
        expires: Optional[str] = None,
        message: Optional[str] = None,
    ) -> "Policy":
        """Build a policy from raw annotation arguments.

        Dates are parsed and validated before anything is compared against
        the current month, so a malformed annotation fails on every build.
        """
        expiry_date = parse_date(expires, field="expires") if expires is not None else None
        if review is None:
            if expiry_date is None:
                raise MissingDateError()
            return cls(expiry_date, expiry_date, message, expires_only=True)
        return cls(parse_date(review, field="review"), expiry_date, message)

    def to_dict(self) -> Dict[str, Any]:
        """Stable, JSON-serializable representation."""
        return {
            "review": None if self.expires_only else str(self.review_date),
            "expires": str(self.expiry_date) if self.expiry_date else None,
            "message": self.custom_message,
        }


class DecisionKind(str, Enum):
    """Outcome of comparing a policy with the effective month."""
    NONE = "none"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class Decision:
    kind: DecisionKind
    message: Optional[str] = None
    threshold: Optional[CalendarDate] = None

    @property
    def is_fatal(self) -> bool:
        return self.kind is DecisionKind.FAIL

    def __str__(self) -> str:
        if self.message is None:
            return self.kind.value
        return f"{self.kind.value}: {self.message}"


NO_ACTION = Decision(DecisionKind.NONE)


def evaluate(policy: Policy, now: CalendarDate, *, target: Optional[str] = None) -> Decision:
    """Decide what to report for *policy* during month *now*.

    Only a month strictly after a threshold triggers; the threshold month
    itself is still compliant.
    """
    expiry = policy.expiry_date
    if expiry is not None and now > expiry:
        decision = Decision(
            DecisionKind.FAIL,
            policy.custom_message or messages.expired_message(expiry, target),
            expiry,
        )
    elif now > policy.review_date:
        decision = Decision(
            DecisionKind.WARN,
            policy.custom_message or messages.review_message(policy.review_date, target),
            policy.review_date,
        )
    else:
        decision = NO_ACTION
    if LOGGER.isEnabledFor(logging.DEBUG):
        LOGGER.debug("Evaluated %s for %s at %s -> %s", policy, target, now, decision.kind.value)
    return decision
