"""Review-by and hard-expiry dates for Python code.

Modules:
- dates: ``MM.YYYY`` parsing into month-granular ``CalendarDate`` values.
- policy: policies, ordering validation, and the none/warn/fail decision.
- clock: effective current month (``BESTBEFORE_DATE`` override or clock).
- diagnostics: message rendering and diagnostic channels.
- decorator: import-time ``@bestbefore`` enforcement.
- scanner/checker: static discovery and build-time checking of annotations.
- cli: Typer-based ``bestbefore`` command.

Top-level exports are lazily loaded so ``from bestbefore import bestbefore``
stays cheap in annotated modules.
"""
from __future__ import annotations

from importlib import import_module
from typing import TYPE_CHECKING, Any
import logging

# Attach a NullHandler by default; applications may configure logging as needed.
LOGGER = logging.getLogger("bestbefore")
LOGGER.addHandler(logging.NullHandler())

# Resolve package version from distribution metadata (best-effort).
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("bestbefore")
except PackageNotFoundError:
    __version__ = "0.0.0"

# Public API surface (kept stable for consumers).
__all__ = [
    # decorator
    "bestbefore",
    "module_policy",
    # dates
    "CalendarDate",
    "parse_date",
    # policy
    "Decision",
    "DecisionKind",
    "Policy",
    "evaluate",
    "validate_policy",
    # clock
    "ENV_VAR",
    "resolve_now",
    # diagnostics
    "RenderedDiagnostic",
    "Severity",
    "format_diagnostic",
    # checker
    "CheckReport",
    "run_check",
    # errors
    "BestBeforeError",
    "CodeExpiredError",
    "ConfigurationError",
    "DateParseError",
    "ExpiryNotAfterReviewError",
    "MalformedDateError",
    "MonthOutOfRangeError",
    "OverrideDateError",
    "ReviewOverdueWarning",
    # meta
    "__version__",
]

# Map export name → (module path, attribute name)
_EXPORTS = {
    "bestbefore": ("bestbefore.decorator", "bestbefore"),
    "module_policy": ("bestbefore.decorator", "module_policy"),
    "CalendarDate": ("bestbefore.dates", "CalendarDate"),
    "parse_date": ("bestbefore.dates", "parse_date"),
    "Decision": ("bestbefore.policy", "Decision"),
    "DecisionKind": ("bestbefore.policy", "DecisionKind"),
    "Policy": ("bestbefore.policy", "Policy"),
    "evaluate": ("bestbefore.policy", "evaluate"),
    "validate_policy": ("bestbefore.policy", "validate_policy"),
    "ENV_VAR": ("bestbefore.clock", "ENV_VAR"),
    "resolve_now": ("bestbefore.clock", "resolve_now"),
    "RenderedDiagnostic": ("bestbefore.diagnostics", "RenderedDiagnostic"),
    "Severity": ("bestbefore.diagnostics", "Severity"),
    "format_diagnostic": ("bestbefore.diagnostics", "format_diagnostic"),
    "CheckReport": ("bestbefore.checker", "CheckReport"),
    "run_check": ("bestbefore.checker", "run_check"),
    "BestBeforeError": ("bestbefore.errors", "BestBeforeError"),
    "CodeExpiredError": ("bestbefore.errors", "CodeExpiredError"),
    "ConfigurationError": ("bestbefore.errors", "ConfigurationError"),
    "DateParseError": ("bestbefore.errors", "DateParseError"),
    "ExpiryNotAfterReviewError": ("bestbefore.errors", "ExpiryNotAfterReviewError"),
    "MalformedDateError": ("bestbefore.errors", "MalformedDateError"),
    "MonthOutOfRangeError": ("bestbefore.errors", "MonthOutOfRangeError"),
    "OverrideDateError": ("bestbefore.errors", "OverrideDateError"),
    "ReviewOverdueWarning": ("bestbefore.errors", "ReviewOverdueWarning"),
    "__version__": (__name__, "__version__"),
}


def __getattr__(name: str) -> Any:
    """Lazy attribute loader for top-level exports."""
    try:
        module_path, attr = _EXPORTS[name]
    except KeyError as exc:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}") from exc

    module = import_module(module_path)
    value = getattr(module, attr)
    globals()[name] = value  # cache
    return value


def __dir__() -> list[str]:
    """Offer a helpful attribute list in REPL/IDEs."""
    return sorted(set(globals().keys()) | set(__all__))


# Static imports for type checkers only; no runtime side effects.
if TYPE_CHECKING:  # pragma: no cover
    from .checker import CheckReport, run_check  # noqa: F401
    from .clock import ENV_VAR, resolve_now  # noqa: F401
    from .dates import CalendarDate, parse_date  # noqa: F401
    from .decorator import bestbefore, module_policy  # noqa: F401
    from .diagnostics import RenderedDiagnostic, Severity, format_diagnostic  # noqa: F401
    from .errors import (  # noqa: F401
        BestBeforeError,
        CodeExpiredError,
        ConfigurationError,
        DateParseError,
        ExpiryNotAfterReviewError,
        MalformedDateError,
        MonthOutOfRangeError,
        OverrideDateError,
        ReviewOverdueWarning,
    )
    from .policy import Decision, DecisionKind, Policy, evaluate, validate_policy  # noqa: F401
