"""Resolution of the month used for comparisons.

All reads of the environment and the wall clock happen here; the evaluator
only ever receives an explicit month.
"""

from __future__ import annotations

import logging
import os
from datetime import date
from typing import Callable, Mapping, Optional

from .dates import CalendarDate, parse_date
from .errors import DateParseError, OverrideDateError

__all__ = ["ENV_VAR", "resolve_now"]

ENV_VAR = "BESTBEFORE_DATE"

LOGGER = logging.getLogger("bestbefore.clock")


def resolve_now(
    environ: Optional[Mapping[str, str]] = None,
    *,
    env_var: str = ENV_VAR,
    clock: Optional[Callable[[], date]] = None,
) -> CalendarDate:
    """Return the override month from *environ* if set, else the current month.

    A blank override counts as unset. A malformed one raises
    :class:`OverrideDateError` so it is never mistaken for a bad annotation.
    """
    env = os.environ if environ is None else environ
    raw = env.get(env_var)
    if raw is not None and raw.strip():
        try:
            now = parse_date(raw.strip(), field=f"${env_var}")
        except DateParseError as exc:
            raise OverrideDateError(env_var, exc) from exc
        LOGGER.debug("Using current-date override %s=%s", env_var, now)
        return now
    today = clock() if clock is not None else date.today()
    return CalendarDate.from_date(today)
