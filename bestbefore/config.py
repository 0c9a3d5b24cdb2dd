"""Checker settings.

Sources, highest precedence first: command-line flags (applied by the CLI
through :meth:`Settings.merged`), an explicit YAML/JSON file, the
``[tool.bestbefore]`` table of ``pyproject.toml``, then the defaults below.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Literal, Mapping, Optional, Tuple

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from .clock import ENV_VAR
from .errors import SettingsError

__all__ = ["Settings", "load_settings"]

LOGGER = logging.getLogger("bestbefore.config")

DEFAULT_IGNORE: Tuple[str, ...] = (
    ".git/**",
    ".hg/**",
    ".venv/**",
    "venv/**",
    "**/__pycache__/**",
    "**/site-packages/**",
    "build/**",
    "dist/**",
    "node_modules/**",
)


@dataclass(frozen=True)
class Settings:
    include: Tuple[str, ...] = ("**/*.py",)
    ignore: Tuple[str, ...] = DEFAULT_IGNORE
    env_var: str = ENV_VAR
    fail_on_warning: bool = False
    max_files: Optional[int] = None
    decorator_names: Tuple[str, ...] = ("bestbefore",)
    module_policy_names: Tuple[str, ...] = ("module_policy",)
    pragma: str = "bestbefore"
    source: Optional[str] = field(default=None, compare=False)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, source: Optional[str] = None) -> "Settings":
        """Build settings from a parsed config document; unknown keys are rejected."""
        known = {f.name for f in fields(cls)} - {"source"}
        normalized = {str(k).replace("-", "_"): v for k, v in data.items()}
        unknown = sorted(set(normalized) - known)
        if unknown:
            raise SettingsError(f"Unknown setting(s) in {source or 'config'}: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for key, value in normalized.items():
            if key in {"include", "ignore", "decorator_names", "module_policy_names"}:
                if isinstance(value, str):
                    value = [value]
                if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
                    raise SettingsError(f"'{key}' must be a list of strings")
                values[key] = tuple(value)
            elif key == "fail_on_warning":
                if not isinstance(value, bool):
                    raise SettingsError("'fail_on_warning' must be true or false")
                values[key] = value
            elif key == "max_files":
                if value is not None and (isinstance(value, bool) or not isinstance(value, int) or value < 1):
                    raise SettingsError("'max_files' must be a positive integer")
                values[key] = value
            else:
                if not isinstance(value, str) or not value.strip():
                    raise SettingsError(f"'{key}' must be a non-empty string")
                values[key] = value.strip()
        return cls(source=source, **values)

    def merged(self, **overrides: Any) -> "Settings":
        """Copy with every non-``None`` override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def load_settings(
    path: Optional[Path] = None,
    *,
    root: Optional[Path] = None,
    fmt: Literal["auto", "yaml", "json"] = "auto",
) -> Settings:
    """Load settings from *path*, or from ``pyproject.toml`` under *root*."""
    if path is not None:
        return Settings.from_mapping(_load_mapping(path, fmt=fmt), source=str(path))

    pyproject = (root or Path.cwd()) / "pyproject.toml"
    if pyproject.is_file():
        try:
            data = tomllib.loads(pyproject.read_text(encoding="utf-8"))
        except tomllib.TOMLDecodeError as exc:
            raise SettingsError(f"Cannot parse {pyproject}: {exc}") from exc
        table = data.get("tool", {}).get("bestbefore")
        if table is not None:
            if not isinstance(table, Mapping):
                raise SettingsError(f"[tool.bestbefore] in {pyproject} must be a table")
            LOGGER.debug("Loaded settings from %s", pyproject)
            return Settings.from_mapping(table, source=str(pyproject))
    return Settings()


def _load_mapping(path: Path, *, fmt: Literal["auto", "yaml", "json"] = "auto") -> Mapping[str, Any]:
    """Load a top-level mapping from YAML or JSON."""
    if fmt == "auto":
        fmt = "json" if path.suffix.lower() == ".json" else "yaml"
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {path}: {exc}") from exc
    try:
        data = json.loads(text) if fmt == "json" else yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise SettingsError(f"Cannot parse settings file {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise SettingsError(f"Root of {path} must be a mapping")
    # allow the same nesting as pyproject.toml
    section = data.get("bestbefore", data)
    if not isinstance(section, Mapping):
        raise SettingsError(f"'bestbefore' section of {path} must be a mapping")
    return section
