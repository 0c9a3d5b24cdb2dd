"""Annotated code as it would appear in a project.

Run ``python examples/basic_usage.py`` to see the import-time warnings, or
``bestbefore check examples`` for the build-time report.
"""

from __future__ import annotations

from bestbefore import bestbefore, module_policy

module_policy(__name__, "06.2023", expires="12.2035", message="Fold the examples into the docs")


# Warning once compiled after March 2024
@bestbefore("03.2024")
def future_warning() -> str:
    return "This function warns after March 2024"


# Warning after January 2026, build failure after December 2030
@bestbefore("01.2026", expires="12.2030")
def expiring_function() -> str:
    return "This function fails to load after December 2030"


@bestbefore("02.2023", message="Please use new_api() instead")
def deprecated_with_message() -> str:
    return "This function has a custom warning message"


@bestbefore("01.2023")
class OldStructure:
    def __init__(self, field: str) -> None:
        self.field = field


# bestbefore: 05.2024 expires=01.2032
LEGACY_FLAGS = {"compat_mode": True}


if __name__ == "__main__":
    print(future_warning())
    print(expiring_function())
    print(deprecated_with_message())
    print(f"Old structure field: {OldStructure('test').field}")
