"""
conftest.py - Pytest configuration and fixtures
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture(autouse=True)
def _no_date_override(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's or CI's BESTBEFORE_DATE out of the tests."""
    monkeypatch.delenv("BESTBEFORE_DATE", raising=False)


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a Python source file under ``tmp_path`` and return its path."""

    def _write(relative: str, text: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write
