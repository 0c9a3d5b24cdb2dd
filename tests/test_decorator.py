"""Tests for the import-time ``@bestbefore`` decorator."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest

from bestbefore import bestbefore, module_policy
from bestbefore.diagnostics import CollectingChannel
from bestbefore.errors import (
    CodeExpiredError,
    ExpiryNotAfterReviewError,
    MalformedDateError,
    ReviewOverdueWarning,
)
from bestbefore.policy import Policy


def _at(month: str) -> dict:
    return {"BESTBEFORE_DATE": month}


def test_compliant_function_is_returned_unchanged() -> None:
    def legacy() -> int:
        return 42

    with warnings.catch_warnings():
        warnings.simplefilter("error")
        decorated = bestbefore("03.2024", environ=_at("03.2024"))(legacy)

    assert decorated is legacy
    assert decorated() == 42
    assert isinstance(decorated.__bestbefore__, Policy)


def test_overdue_function_warns_but_still_works() -> None:
    with pytest.warns(ReviewOverdueWarning, match=r"past review date \(03\.2024\)") as record:

        @bestbefore("03.2024", environ=_at("04.2024"))
        def legacy() -> str:
            return "still here"

    assert legacy() == "still here"
    assert "legacy" in str(record[0].message)
    assert Path(record[0].filename).name == Path(__file__).name


def test_expired_function_aborts_definition() -> None:
    with pytest.raises(CodeExpiredError, match=r"has expired \(after 12\.2023\)"):

        @bestbefore("01.2023", expires="12.2023", environ=_at("01.2024"))
        def very_old() -> None:
            pass


def test_custom_message_is_used() -> None:
    with pytest.warns(ReviewOverdueWarning, match="Please use new_api"):

        @bestbefore("02.2023", message="Please use new_api() instead", environ=_at("03.2023"))
        def deprecated_with_message() -> None:
            pass


def test_expires_only_never_warns() -> None:
    with warnings.catch_warnings():
        warnings.simplefilter("error")

        @bestbefore(expires="01.2028", environ=_at("01.2028"))
        def short_lived() -> None:
            pass

    with pytest.raises(CodeExpiredError):
        bestbefore(expires="01.2028", environ=_at("02.2028"))(short_lived)


def test_malformed_dates_fail_before_decoration() -> None:
    with pytest.raises(MalformedDateError):
        bestbefore("2024-03")


def test_bad_ordering_fails_regardless_of_current_month() -> None:
    for month in ("01.2000", "01.2100"):
        with pytest.raises(ExpiryNotAfterReviewError):
            bestbefore("05.2023", expires="04.2023", environ=_at(month))


def test_classes_keep_identity_and_are_named() -> None:
    with pytest.warns(ReviewOverdueWarning, match="class .*OldStructure"):

        @bestbefore("01.2023", environ=_at("06.2023"))
        class OldStructure:
            field = "test"

    assert OldStructure.field == "test"
    assert OldStructure.__bestbefore__.review_date.year == 2023


def test_reads_override_from_process_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("BESTBEFORE_DATE", "01.2024")

    with pytest.raises(CodeExpiredError):
        bestbefore("01.2023", expires="12.2023")(lambda: None)


def test_custom_channel_receives_diagnostics() -> None:
    channel = CollectingChannel()

    @bestbefore("01.2023", expires="12.2023", environ=_at("02.2024"), channel=channel)
    def collected() -> None:
        pass

    assert channel.has_errors
    assert Path(channel.diagnostics[0].location.path).name == Path(__file__).name


def test_module_policy_targets_module() -> None:
    with pytest.warns(ReviewOverdueWarning, match="module legacy_module"):
        policy = module_policy("legacy_module", "06.2023", environ=_at("07.2023"))

    assert policy.expiry_date is None
