"""Tests for :mod:`bestbefore.scanner`."""

from __future__ import annotations

import logging
import textwrap
from pathlib import Path
from typing import Callable

import pytest

from bestbefore.config import Settings
from bestbefore.errors import AnnotationArgumentError, MissingDateError
from bestbefore.scanner import collect_source_files, iter_source_files, read_source, scan_paths, scan_source


def _scan(source: str, path: str = "pkg/legacy.py"):
    return scan_source(textwrap.dedent(source), path)


# ------------------------------ decorators --------------------------------

def test_decorator_arguments_are_extracted() -> None:
    (annotation,) = _scan(
        """
        from bestbefore import bestbefore

        @bestbefore("01.2023", expires="12.2023", message="use new_api()")
        def very_old_function():
            pass
        """
    )

    assert annotation.kind == "decorator"
    assert annotation.line == 4
    assert annotation.target == "function very_old_function"
    assert (annotation.review, annotation.expires, annotation.message) == ("01.2023", "12.2023", "use new_api()")
    assert annotation.error is None


def test_attribute_form_methods_and_classes() -> None:
    found = _scan(
        """
        import bestbefore as bb

        @bb.bestbefore("06.2023")
        class Legacy:
            @bb.bestbefore(expires="01.2028")
            async def run(self):
                pass
        """
    )

    assert [a.target for a in found] == ["class Legacy", "function Legacy.run"]
    assert found[1].review is None
    assert found[1].expires == "01.2028"


def test_unrelated_decorators_are_ignored() -> None:
    found = _scan(
        """
        import functools

        @functools.lru_cache(maxsize=None)
        @staticmethod
        def bestbefore_helper():
            pass
        """
    )

    assert found == []


@pytest.mark.parametrize(
    "decorator, fragment",
    [
        ("@bestbefore(REVIEW_DATE)", "string literal"),
        ("@bestbefore(202403)", "got int"),
        ('@bestbefore("03.2024", until="04.2024")', "Unknown parameter 'until'"),
        ('@bestbefore("03.2024", "04.2024")', "at most one positional"),
        ("@bestbefore(**options)", "**kwargs"),
        ("@bestbefore", "must be called"),
    ],
)
def test_unusable_decorator_arguments_become_errors(decorator: str, fragment: str) -> None:
    (annotation,) = _scan(f"{decorator}\ndef f():\n    pass\n")

    assert isinstance(annotation.error, AnnotationArgumentError)
    assert fragment in str(annotation.error)
    with pytest.raises(AnnotationArgumentError):
        annotation.policy()


def test_empty_decorator_call_fails_policy_construction() -> None:
    (annotation,) = _scan("@bestbefore()\ndef f():\n    pass\n")

    assert annotation.error is None
    with pytest.raises(MissingDateError):
        annotation.policy()


# ---------------------------- module_policy -------------------------------

def test_module_policy_call_is_a_module_annotation() -> None:
    (annotation,) = _scan(
        """
        from bestbefore import module_policy

        module_policy(__name__, "01.2023", expires="12.2023", message="Fold into importer_v2")
        """
    )

    assert annotation.kind == "module"
    assert annotation.line == 4
    assert annotation.target == "module legacy"
    assert (annotation.review, annotation.expires, annotation.message) == (
        "01.2023",
        "12.2023",
        "Fold into importer_v2",
    )
    assert annotation.error is None


def test_module_policy_literal_name_keyword_and_attribute_forms() -> None:
    annotations = _scan(
        """
        import bestbefore as bb

        bb.module_policy("pkg.legacy", expires="01.2028", environ={})
        bb.module_policy(module_name=__name__, review="03.2024")
        """
    )

    assert [(a.target, a.review, a.expires) for a in annotations] == [
        ("module pkg.legacy", None, "01.2028"),
        ("module legacy", "03.2024", None),
    ]
    assert all(a.error is None for a in annotations)


@pytest.mark.parametrize(
    "call, fragment",
    [
        ("module_policy()", "module name first"),
        ('module_policy(__name__, "01.2023", "02.2023")', "at most one positional"),
        ("module_policy(__name__, REVIEW)", "'review' must be a string literal"),
        ('module_policy(__name__, "01.2023", until="02.2023")', "Unknown parameter 'until'"),
    ],
)
def test_unusable_module_policy_arguments_become_errors(call: str, fragment: str) -> None:
    (annotation,) = scan_source(f"{call}\n", "m.py")

    assert isinstance(annotation.error, AnnotationArgumentError)
    assert fragment in str(annotation.error)


def test_custom_module_policy_names() -> None:
    settings = Settings(module_policy_names=("retire_module",))

    (annotation,) = scan_source('retire_module(__name__, "03.2024")\n', "m.py", settings=settings)

    assert annotation.target == "module m"


# ------------------------------- pragmas ----------------------------------

def test_pragma_above_code_targets_module() -> None:
    (annotation,) = _scan(
        '''
        """Old importer."""
        # bestbefore: 06.2023 expires=01.2025 message="Replace with importer_v2"

        import os
        '''
    )

    assert annotation.kind == "pragma"
    assert annotation.target == "module legacy"
    assert annotation.review == "06.2023"
    assert annotation.expires == "01.2025"
    assert annotation.message == "Replace with importer_v2"


def test_pragma_in_package_init_uses_package_name() -> None:
    (annotation,) = _scan("# bestbefore: 06.2023\n", path="src/oldpkg/__init__.py")

    assert annotation.target == "module oldpkg"


def test_pragma_targets_following_block() -> None:
    found = _scan(
        """
        import os

        # bestbefore: 03.2024
        def helper():
            pass

        # bestbefore: expires=05.2024
        class Shim:
            pass

        if os.name == "nt":
            # bestbefore: 01.2024
            WINDOWS_HACK = True
        """
    )

    assert [a.target for a in found] == ["function helper", "class Shim", "code block"]
    assert found[1].review is None and found[1].expires == "05.2024"


@pytest.mark.parametrize(
    "pragma, fragment",
    [
        ('# bestbefore: 03.2024 message="unterminated', "cannot split"),
        ("# bestbefore: 03.2024 until=04.2024", "Unknown parameter 'until'"),
        ("# bestbefore: 03.2024 04.2024", "more than once"),
    ],
)
def test_bad_pragmas_become_errors(pragma: str, fragment: str) -> None:
    (annotation,) = _scan(f"x = 1\n{pragma}\ny = 2\n")

    assert isinstance(annotation.error, AnnotationArgumentError)
    assert fragment in str(annotation.error)


def test_pragma_text_inside_strings_is_not_an_annotation() -> None:
    assert _scan('DOC = "# bestbefore: 01.2020"\n') == []


def test_files_without_markers_are_not_parsed() -> None:
    assert scan_source("this is not python(", "notes.py") == []


def test_syntax_errors_propagate_from_scan_source() -> None:
    with pytest.raises(SyntaxError):
        scan_source("@bestbefore('01.2020')\ndef broken(:\n", "broken.py")


def test_custom_decorator_names() -> None:
    settings = Settings(decorator_names=("review_by",))
    found = scan_source("@review_by('01.2020')\ndef f():\n    pass\n", "m.py", settings=settings)

    assert [a.review for a in found] == ["01.2020"]


# ------------------------------ file walking ------------------------------

def test_scan_paths_walks_tree_and_skips_bad_files(write_source: Callable[[str, str], Path], tmp_path: Path) -> None:
    write_source("pkg/a.py", "@bestbefore('01.2020')\ndef a():\n    pass\n")
    write_source("pkg/sub/b.py", "# bestbefore: 02.2020\nx = 1\n")
    write_source("pkg/broken.py", "# bestbefore: 02.2020\ndef broken(:\n")
    write_source(".venv/lib/c.py", "# bestbefore: 02.2020\n")
    write_source("pkg/readme.txt", "# bestbefore: 02.2020\n")

    result = scan_paths([tmp_path])

    assert result.files == 3
    assert sorted(Path(a.path).name for a in result.annotations) == ["a.py", "b.py"]
    assert [Path(s.path).name for s in result.skipped] == ["broken.py"]
    assert "cannot parse" in result.skipped[0].reason


def test_explicit_files_are_always_scanned(write_source: Callable[[str, str], Path]) -> None:
    path = write_source("scripts/tool", "# bestbefore: 02.2020\n")

    result = scan_paths([path])

    assert len(result.annotations) == 1


def test_max_files_caps_the_walk(write_source: Callable[[str, str], Path], tmp_path: Path) -> None:
    for name in ("a", "b", "c"):
        write_source(f"{name}.py", "x = 1\n")

    files = list(iter_source_files([tmp_path], Settings(max_files=2)))

    assert len(files) == 2


def test_duplicate_roots_are_scanned_once(write_source: Callable[[str, str], Path], tmp_path: Path) -> None:
    path = write_source("a.py", "x = 1\n")

    assert list(iter_source_files([tmp_path, path], Settings())) == [path]


def test_max_files_equal_to_file_count_is_not_truncated(
    write_source: Callable[[str, str], Path], tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    for name in ("a", "b"):
        write_source(f"{name}.py", "x = 1\n")

    with caplog.at_level(logging.WARNING, logger="bestbefore"):
        files, truncated = collect_source_files([tmp_path], Settings(max_files=2))

    assert len(files) == 2
    assert truncated is False
    assert not caplog.records


def test_max_files_reports_left_out_files(
    write_source: Callable[[str, str], Path], tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    for name in ("a", "b", "c"):
        write_source(f"{name}.py", "x = 1\n")

    with caplog.at_level(logging.WARNING, logger="bestbefore"):
        result = scan_paths([tmp_path], Settings(max_files=2))

    assert result.files == 2
    assert result.truncated is True
    assert "max_files=2" in caplog.text


# ------------------------------ encodings ---------------------------------

EXPIRED = '@bestbefore("01.2023", expires="12.2023", message="Café menu")\ndef old():\n    pass\n'


def test_utf8_bom_files_are_scanned(tmp_path: Path) -> None:
    path = tmp_path / "bom.py"
    path.write_bytes(b"\xef\xbb\xbf" + EXPIRED.encode("utf-8"))

    result = scan_paths([path])

    assert result.skipped == []
    (annotation,) = result.annotations
    assert annotation.line == 1
    assert annotation.message == "Café menu"


def test_coding_cookie_is_honoured(tmp_path: Path) -> None:
    path = tmp_path / "legacy_latin1.py"
    path.write_bytes(("# -*- coding: latin-1 -*-\n" + EXPIRED).encode("latin-1"))

    result = scan_paths([path])

    assert result.skipped == []
    (annotation,) = result.annotations
    assert annotation.line == 2
    assert annotation.message == "Café menu"


def test_unknown_coding_cookie_is_skipped(tmp_path: Path) -> None:
    path = tmp_path / "odd.py"
    path.write_bytes(b"# -*- coding: no-such-codec -*-\n" + EXPIRED.encode("utf-8"))

    result = scan_paths([path])

    assert result.annotations == []
    assert result.skipped[0].reason.startswith("unreadable")


def test_read_source_strips_bom(tmp_path: Path) -> None:
    path = tmp_path / "bom.py"
    path.write_bytes(b"\xef\xbb\xbfx = 1\n")

    assert read_source(path) == "x = 1\n"


def test_scan_source_accepts_text_with_bom() -> None:
    (annotation,) = scan_source("\ufeff" + EXPIRED, "m.py")

    assert annotation.target == "function old"


def test_progress_bar_wraps_the_file_walk(
    write_source: Callable[[str, str], Path], tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    calls = []

    def fake_tqdm(iterable, **kwargs):
        calls.append(kwargs)
        return iterable

    monkeypatch.setattr("bestbefore.scanner.tqdm", fake_tqdm)
    write_source("a.py", "# bestbefore: 01.2020\n")

    quiet = scan_paths([tmp_path])
    shown = scan_paths([tmp_path], progress=True)

    assert len(quiet.annotations) == len(shown.annotations) == 1
    assert [c["desc"] for c in calls] == ["Scanning"]
