"""Only a hard deadline: no warning first, the build simply fails after it."""

from __future__ import annotations

from bestbefore import bestbefore


@bestbefore(expires="01.2028")
def function_with_only_expiration_date() -> None:
    print("Fails to load after January 2028")


@bestbefore(expires="01.2028", message="This code must be removed by 2028")
def expiration_with_custom_message() -> None:
    print("Fails to load with a custom message after January 2028")


if __name__ == "__main__":
    function_with_only_expiration_date()
    expiration_with_custom_message()
    print("Example completed!")
