"""Rendering decisions into diagnostics and handing them to a channel.

A channel is whatever surfaces the diagnostic to the developer: the Python
warnings machinery at import time, or a collector the command-line checker
prints from.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol

from . import messages
from .errors import CodeExpiredError, ReviewOverdueWarning
from .policy import Decision, DecisionKind, Policy

__all__ = [
    "CollectingChannel",
    "DiagnosticChannel",
    "Location",
    "RenderedDiagnostic",
    "Severity",
    "WarningsChannel",
    "configuration_diagnostic",
    "format_diagnostic",
]

LOGGER = logging.getLogger("bestbefore.diagnostics")


class Severity(str, Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Location:
    """Where an annotation sits; supplied by the host, never computed here."""
    path: str
    line: Optional[int] = None

    def __str__(self) -> str:
        return self.path if self.line is None else f"{self.path}:{self.line}"


@dataclass(frozen=True)
class RenderedDiagnostic:
    """A single message ready for the host's diagnostic channel."""

    severity: Severity
    message: str
    location: Optional[Location] = None
    target: Optional[str] = None
    configuration: bool = False

    @property
    def fatal(self) -> bool:
        return self.severity is Severity.ERROR

    def render(self) -> str:
        """Compiler-style ``path:line: severity: message`` line."""
        text = f"{self.severity.value}: {self.message}"
        return text if self.location is None else f"{self.location}: {text}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "severity": self.severity.value,
            "message": self.message,
            "path": self.location.path if self.location else None,
            "line": self.location.line if self.location else None,
            "target": self.target,
            "configuration": self.configuration,
        }

    def __str__(self) -> str:
        return self.render()


def format_diagnostic(
    decision: Decision,
    policy: Policy,
    *,
    location: Optional[Location] = None,
    target: Optional[str] = None,
) -> Optional[RenderedDiagnostic]:
    """Turn *decision* into a diagnostic, or ``None`` when nothing is due.

    The custom message of *policy* wins over the default wording.
    """
    if decision.kind is DecisionKind.NONE:
        return None
    severity = Severity.ERROR if decision.kind is DecisionKind.FAIL else Severity.WARNING
    message = policy.custom_message or decision.message
    if not message:
        # hand-built decisions may carry no text
        if decision.is_fatal:
            expiry = decision.threshold or policy.expiry_date or policy.review_date
            message = messages.expired_message(expiry, target)
        else:
            message = messages.review_message(decision.threshold or policy.review_date, target)
    return RenderedDiagnostic(severity, message, location, target)


def configuration_diagnostic(
    error: Exception,
    *,
    location: Optional[Location] = None,
    target: Optional[str] = None,
) -> RenderedDiagnostic:
    """Fatal diagnostic for a malformed annotation or environment."""
    return RenderedDiagnostic(
        Severity.ERROR,
        messages.configuration_message(error),
        location,
        target,
        configuration=True,
    )


class DiagnosticChannel(Protocol):
    def emit(self, diagnostic: RenderedDiagnostic) -> None: ...


class WarningsChannel:
    """Surface diagnostics through :mod:`warnings` and exceptions.

    Warnings go out as :class:`ReviewOverdueWarning`; errors raise
    :class:`CodeExpiredError`, aborting whatever is being loaded.
    """

    def __init__(self, *, stacklevel: int = 3) -> None:
        self.stacklevel = stacklevel

    def emit(self, diagnostic: RenderedDiagnostic) -> None:
        _log(diagnostic)
        if diagnostic.fatal:
            raise CodeExpiredError(diagnostic.message, target=diagnostic.target)
        warnings.warn(diagnostic.message, ReviewOverdueWarning, stacklevel=self.stacklevel)


class CollectingChannel:
    """Keep diagnostics in memory for later reporting."""

    def __init__(self) -> None:
        self.diagnostics: List[RenderedDiagnostic] = []

    def emit(self, diagnostic: RenderedDiagnostic) -> None:
        _log(diagnostic)
        self.diagnostics.append(diagnostic)

    @property
    def has_errors(self) -> bool:
        return any(d.fatal for d in self.diagnostics)


def _log(diagnostic: RenderedDiagnostic) -> None:
    level = logging.ERROR if diagnostic.fatal else logging.WARNING
    LOGGER.log(level, "%s", diagnostic.render())
