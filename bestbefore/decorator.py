"""Import-time enforcement of expiration policies.

    from bestbefore import bestbefore

    @bestbefore("03.2024", expires="12.2025", message="use new_api()")
    def legacy_api(): ...

The decorated object is returned as-is. Past the review date a
:class:`~bestbefore.errors.ReviewOverdueWarning` is issued when the
definition executes; past the expiry :class:`~bestbefore.errors.CodeExpiredError`
is raised, so the enclosing module fails to import.
"""

from __future__ import annotations

from typing import Callable, Mapping, Optional, TypeVar

from .clock import ENV_VAR, resolve_now
from .diagnostics import DiagnosticChannel, Location, WarningsChannel, format_diagnostic
from .policy import Policy, evaluate

__all__ = ["bestbefore", "describe_target", "enforce", "module_policy"]

T = TypeVar("T")


def describe_target(obj: object) -> str:
    """Human label for a decorated object, e.g. ``function pkg.mod.run``."""
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if name is None:
        return "code block"
    module = getattr(obj, "__module__", None)
    qualified = f"{module}.{name}" if module and module != "__main__" else name
    if isinstance(obj, type):
        return f"class {qualified}"
    if callable(obj):
        return f"function {qualified}"
    return qualified


def _location_of(obj: object) -> Optional[Location]:
    code = getattr(obj, "__code__", None)
    if code is None:
        return None
    return Location(code.co_filename, code.co_firstlineno)


def enforce(
    policy: Policy,
    *,
    target: Optional[str] = None,
    location: Optional[Location] = None,
    environ: Optional[Mapping[str, str]] = None,
    env_var: str = ENV_VAR,
    channel: Optional[DiagnosticChannel] = None,
) -> None:
    """Evaluate *policy* against the effective month and emit the outcome."""
    now = resolve_now(environ, env_var=env_var)
    decision = evaluate(policy, now, target=target)
    diagnostic = format_diagnostic(decision, policy, location=location, target=target)
    if diagnostic is not None:
        (channel or WarningsChannel()).emit(diagnostic)


def bestbefore(
    review: Optional[str] = None,
    *,
    expires: Optional[str] = None,
    message: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    channel: Optional[DiagnosticChannel] = None,
) -> Callable[[T], T]:
    """Attach a review-by (and optional hard-expiry) date to a definition.

    Date arguments use ``MM.YYYY``. Malformed dates raise a
    :class:`~bestbefore.errors.ConfigurationError` here, before the
    decorator is even applied. *environ* and *channel* exist for tests and
    embedding; by default ``os.environ`` and :class:`WarningsChannel` are used.
    """
    policy = Policy.from_arguments(review, expires=expires, message=message)

    def decorator(obj: T) -> T:
        # stacklevel 4 points the warning at the decorated definition
        enforce(
            policy,
            target=describe_target(obj),
            location=_location_of(obj),
            environ=environ,
            channel=channel or WarningsChannel(stacklevel=4),
        )
        try:
            setattr(obj, "__bestbefore__", policy)
        except (AttributeError, TypeError):
            pass  # builtins and slotted objects cannot take attributes
        return obj

    return decorator


def module_policy(
    module_name: str,
    review: Optional[str] = None,
    *,
    expires: Optional[str] = None,
    message: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    channel: Optional[DiagnosticChannel] = None,
) -> Policy:
    """Enforce a policy for a whole module; call at module top level.

        module_policy(__name__, "06.2024", expires="01.2025")
    """
    policy = Policy.from_arguments(review, expires=expires, message=message)
    enforce(
        policy,
        target=f"module {module_name}",
        environ=environ,
        channel=channel or WarningsChannel(stacklevel=4),
    )
    return policy
