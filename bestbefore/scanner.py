"""Static discovery of expiration annotations in Python sources.

Three annotation forms are recognised:

- decorator calls, ``@bestbefore("03.2024", expires="12.2025", message="...")``
  (also ``@pkg.bestbefore(...)``) on functions, methods and classes;
- module-level calls, ``module_policy(__name__, "03.2024", expires="12.2025")``;
- pragma comments, ``# bestbefore: 03.2024 expires=12.2025 message="..."``.
  A pragma above the first statement of a file annotates the module;
  anywhere else it annotates the block that follows it.

Files are only read and parsed, never imported or modified.
"""

from __future__ import annotations

import ast
import fnmatch
import io
import itertools
import logging
import re
import shlex
import tokenize
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from tqdm import tqdm

from .config import Settings
from .errors import AnnotationArgumentError, ConfigurationError
from .policy import Policy

__all__ = [
    "Annotation",
    "ScanResult",
    "SkippedFile",
    "collect_source_files",
    "iter_source_files",
    "read_source",
    "scan_paths",
    "scan_source",
]

LOGGER = logging.getLogger("bestbefore.scanner")

_ARGUMENT_NAMES = ("review", "expires", "message")
# accepted by the runtime helpers, irrelevant to the policy
_RUNTIME_ONLY = ("environ", "channel")


@dataclass(frozen=True)
class Annotation:
    """One annotation as written in a source file.

    ``error`` is set when the annotation's arguments could not even be
    extracted (non-literal values, unknown keywords, bad quoting).
    """

    path: str
    line: int
    target: str
    kind: str  # "decorator" | "module" | "pragma"
    review: Optional[str] = None
    expires: Optional[str] = None
    message: Optional[str] = None
    error: Optional[ConfigurationError] = None

    def policy(self) -> Policy:
        """Build the policy; raises :class:`ConfigurationError` when malformed."""
        if self.error is not None:
            raise self.error
        return Policy.from_arguments(self.review, expires=self.expires, message=self.message)


@dataclass(frozen=True)
class SkippedFile:
    path: str
    reason: str


@dataclass
class ScanResult:
    annotations: List[Annotation]
    skipped: List[SkippedFile]
    files: int = 0
    truncated: bool = False


# ----------------------------- decorators ---------------------------------

class _DecoratorCollector(ast.NodeVisitor):
    def __init__(self, path: str, names: Sequence[str], module_names: Sequence[str] = ()) -> None:
        self.path = path
        self.names = frozenset(names)
        self.module_names = frozenset(module_names)
        self.scope: List[str] = []
        self.found: List[Annotation] = []

    def _visit_definition(self, node: ast.AST, kind: str) -> None:
        name = getattr(node, "name")
        qualname = ".".join([*self.scope, name])
        for decorator in getattr(node, "decorator_list", []):
            annotation = self._from_decorator(decorator, f"{kind} {qualname}")
            if annotation is not None:
                self.found.append(annotation)
        self.scope.append(name)
        self.generic_visit(node)
        self.scope.pop()

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_definition(node, "function")

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_definition(node, "function")

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._visit_definition(node, "class")

    def visit_Call(self, node: ast.Call) -> None:
        if _matches(node.func, self.module_names):
            self.found.append(self._from_module_call(node))
        self.generic_visit(node)

    def _from_decorator(self, decorator: ast.expr, target: str) -> Optional[Annotation]:
        line = decorator.lineno
        if not isinstance(decorator, ast.Call):
            if _matches(decorator, self.names):
                error = AnnotationArgumentError(
                    "decorator must be called with a review date and/or expires=..."
                )
                return Annotation(self.path, line, target, "decorator", error=error)
            return None
        if not _matches(decorator.func, self.names):
            return None
        try:
            values = _call_arguments(decorator.args, decorator.keywords)
        except AnnotationArgumentError as exc:
            return Annotation(self.path, line, target, "decorator", error=exc)
        return Annotation(self.path, line, target, "decorator", **values)

    def _from_module_call(self, call: ast.Call) -> Annotation:
        args = list(call.args)
        keywords = [kw for kw in call.keywords if kw.arg != "module_name"]
        module = next((kw.value for kw in call.keywords if kw.arg == "module_name"), None)
        if module is None and args and not isinstance(args[0], ast.Starred):
            module, args = args[0], args[1:]
        target = f"module {_module_label(module, self.path)}"
        if module is None:
            error = AnnotationArgumentError("module_policy must be given the module name first")
            return Annotation(self.path, call.lineno, target, "module", error=error)
        try:
            values = _call_arguments(args, keywords)
        except AnnotationArgumentError as exc:
            return Annotation(self.path, call.lineno, target, "module", error=exc)
        return Annotation(self.path, call.lineno, target, "module", **values)


def _matches(node: ast.AST, names: frozenset) -> bool:
    if isinstance(node, ast.Name):
        return node.id in names
    if isinstance(node, ast.Attribute):
        return node.attr in names
    return False


def _module_label(node: Optional[ast.expr], path: str) -> str:
    """A literal module name as written, otherwise the file's module name (``__name__``)."""
    if isinstance(node, ast.Constant) and isinstance(node.value, str) and node.value:
        return node.value
    return _module_name(path)


def _literal_string(node: ast.expr, name: str) -> str:
    try:
        value = ast.literal_eval(node)
    except (ValueError, TypeError) as exc:
        raise AnnotationArgumentError(f"'{name}' must be a string literal") from exc
    if not isinstance(value, str):
        raise AnnotationArgumentError(f"'{name}' must be a string literal, got {type(value).__name__}")
    return value


def _call_arguments(args: Sequence[ast.expr], keywords: Sequence[ast.keyword]) -> dict:
    values: dict = {}
    if len(args) > 1:
        raise AnnotationArgumentError("expected at most one positional argument (the review date)")
    if args:
        if isinstance(args[0], ast.Starred):
            raise AnnotationArgumentError("star-arguments are not supported")
        values["review"] = _literal_string(args[0], "review")
    for keyword in keywords:
        if keyword.arg is None:
            raise AnnotationArgumentError("**kwargs are not supported")
        if keyword.arg in _RUNTIME_ONLY:
            continue
        if keyword.arg not in _ARGUMENT_NAMES:
            raise AnnotationArgumentError(
                f"Unknown parameter {keyword.arg!r}, expected 'expires' or 'message'"
            )
        if keyword.arg in values:
            raise AnnotationArgumentError(f"'{keyword.arg}' given more than once")
        values[keyword.arg] = _literal_string(keyword.value, keyword.arg)
    return values


# ------------------------------- pragmas ----------------------------------

def _pragma_arguments(body: str) -> dict:
    try:
        tokens = shlex.split(body, comments=False, posix=True)
    except ValueError as exc:
        raise AnnotationArgumentError(f"cannot split pragma arguments: {exc}") from exc
    values: dict = {}
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep:
            key, value = "review", token
        if key not in _ARGUMENT_NAMES:
            raise AnnotationArgumentError(
                f"Unknown parameter {key!r}, expected 'expires' or 'message'"
            )
        if key in values:
            raise AnnotationArgumentError(f"'{key}' given more than once")
        values[key] = value
    return values


def _statement_lines(tree: ast.Module) -> List[Tuple[int, ast.stmt]]:
    return sorted(
        ((node.lineno, node) for node in ast.walk(tree) if isinstance(node, ast.stmt)),
        key=lambda item: item[0],
    )


def _module_name(path: str) -> str:
    p = Path(path)
    return p.parent.name if p.stem == "__init__" and p.parent.name else p.stem


def _module_start(tree: ast.Module) -> Optional[int]:
    """Line of the first top-level statement after any module docstring."""
    body = tree.body
    if body and isinstance(body[0], ast.Expr) and isinstance(body[0].value, ast.Constant) \
            and isinstance(body[0].value.value, str):
        body = body[1:]
    return body[0].lineno if body else None


def _pragma_target(
    line: int, statements: List[Tuple[int, ast.stmt]], module_start: Optional[int], path: str
) -> str:
    if module_start is None or line < module_start:
        return f"module {_module_name(path)}"
    following = next((node for lineno, node in statements if lineno >= line), None)
    if isinstance(following, (ast.FunctionDef, ast.AsyncFunctionDef)):
        return f"function {following.name}"
    if isinstance(following, ast.ClassDef):
        return f"class {following.name}"
    return "code block"


def _collect_pragmas(text: str, path: str, tree: ast.Module, pragma: str) -> List[Annotation]:
    pattern = re.compile(rf"#\s*{re.escape(pragma)}\s*:(.*)$")
    statements = _statement_lines(tree)
    module_start = _module_start(tree)
    found: List[Annotation] = []
    for tok in tokenize.generate_tokens(io.StringIO(text).readline):
        if tok.type != tokenize.COMMENT:
            continue
        match = pattern.match(tok.string)
        if match is None:
            continue
        line = tok.start[0]
        target = _pragma_target(line, statements, module_start, path)
        try:
            values = _pragma_arguments(match.group(1).strip())
        except AnnotationArgumentError as exc:
            found.append(Annotation(path, line, target, "pragma", error=exc))
            continue
        found.append(Annotation(path, line, target, "pragma", **values))
    return found


# ------------------------------- public -----------------------------------

def scan_source(text: str, path: str = "<string>", *, settings: Optional[Settings] = None) -> List[Annotation]:
    """Return every annotation in *text*, ordered by line.

    Raises :class:`SyntaxError` when *text* is not valid Python.
    """
    settings = settings or Settings()
    if text.startswith("\ufeff"):
        text = text[1:]
    names = (*settings.decorator_names, *settings.module_policy_names)
    has_decorator = any(name in text for name in names)
    has_pragma = settings.pragma in text
    if not (has_decorator or has_pragma):
        return []
    tree = ast.parse(text, filename=path)
    found: List[Annotation] = []
    if has_decorator:
        collector = _DecoratorCollector(path, settings.decorator_names, settings.module_policy_names)
        collector.visit(tree)
        found.extend(collector.found)
    if has_pragma:
        found.extend(_collect_pragmas(text, path, tree, settings.pragma))
    return sorted(found, key=lambda a: a.line)


def _is_ignored(rel: str, name: str, patterns: Sequence[str]) -> bool:
    for pat in patterns:
        if fnmatch.fnmatch(rel, pat) or fnmatch.fnmatch(f"/{rel}", pat) or fnmatch.fnmatch(name, pat):
            return True
    return False


def _iter_candidates(paths: Iterable[Path], settings: Settings) -> Iterator[Path]:
    seen = set()
    for root in paths:
        if root.is_file():
            candidates: Iterable[Path] = [root]
        else:
            matches = set()
            for pattern in settings.include:
                for p in root.glob(pattern):
                    if p.is_file() and not _is_ignored(p.relative_to(root).as_posix(), p.name, settings.ignore):
                        matches.add(p)
            candidates = sorted(matches, key=lambda p: str(p).lower())
        for path in candidates:
            key = path.resolve()
            if key in seen:
                continue
            seen.add(key)
            yield path


def collect_source_files(paths: Iterable[Path], settings: Settings) -> Tuple[List[Path], bool]:
    """Files to scan, and whether ``max_files`` left any candidate out."""
    candidates = _iter_candidates(paths, settings)
    if settings.max_files is None:
        return list(candidates), False
    files = list(itertools.islice(candidates, settings.max_files))
    truncated = next(candidates, None) is not None
    if truncated:
        LOGGER.warning("Stopped after max_files=%d files; remaining files were not scanned", settings.max_files)
    return files, truncated


def iter_source_files(paths: Iterable[Path], settings: Settings) -> Iterator[Path]:
    """Yield files under *paths* honouring include/ignore globs and ``max_files``.

    Explicit file arguments are always yielded; directories are expanded.
    """
    files, _ = collect_source_files(paths, settings)
    yield from files


def _wrap_with_progress(iterable: Iterable[Path], *, enabled: bool) -> Iterable[Path]:
    if not enabled:
        return iterable
    return tqdm(iterable, desc="Scanning", unit="file", leave=False)


def read_source(path: Path) -> str:
    """Decode *path* the way the interpreter does: BOM first, then a coding cookie, else UTF-8.

    Raises :class:`OSError`, :class:`SyntaxError` (unknown or conflicting
    encoding declaration) or :class:`UnicodeDecodeError`.
    """
    with tokenize.open(path) as handle:
        return handle.read()


def scan_paths(paths: Iterable[Path], settings: Optional[Settings] = None, *, progress: bool = False) -> ScanResult:
    """Scan files and directories; unreadable or unparsable files are skipped, not fatal."""
    settings = settings or Settings()
    files, truncated = collect_source_files(paths, settings)
    result = ScanResult(annotations=[], skipped=[], truncated=truncated)
    for path in _wrap_with_progress(files, enabled=progress):
        result.files += 1
        try:
            text = read_source(path)
        except (OSError, SyntaxError, UnicodeDecodeError) as exc:
            result.skipped.append(SkippedFile(str(path), f"unreadable: {exc}"))
            continue
        try:
            found = scan_source(text, str(path), settings=settings)
        except (SyntaxError, tokenize.TokenError) as exc:
            result.skipped.append(SkippedFile(str(path), f"cannot parse: {exc}"))
            continue
        if found and LOGGER.isEnabledFor(logging.DEBUG):
            LOGGER.debug("Found %d annotation(s) in %s", len(found), path)
        result.annotations.extend(found)
    return result
