"""Typer-based command line for build-time expiry checks.

Install an entrypoint like:
    bestbefore = bestbefore.cli:main

Exit codes: 0 nothing fatal, 1 expired code or malformed annotations,
2 bad invocation (bad ``--now``, override variable or settings file).
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import typer

from .checker import run_check
from .clock import resolve_now
from .config import Settings, load_settings
from .dates import CalendarDate, parse_date
from .diagnostics import format_diagnostic
from .errors import ConfigurationError, DateParseError
from .policy import DecisionKind, Policy, evaluate
from .scanner import Annotation, scan_paths

app = typer.Typer(
    name="bestbefore",
    no_args_is_help=True,
    add_completion=False,
    help="Enforce review-by and expiry dates on annotated Python code.",
)

LOGGER = logging.getLogger("bestbefore.cli")

USAGE_ERROR = 2


# --------------------------- internal helpers ---------------------------------

def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str, code: int = USAGE_ERROR) -> typer.Exit:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    return typer.Exit(code=code)


def _load(config: Optional[Path]) -> Settings:
    try:
        return load_settings(config)
    except ConfigurationError as exc:
        raise _fail(str(exc))


def _effective_now(now: Optional[str], settings: Settings) -> CalendarDate:
    """``--now`` wins over the override variable, which wins over the clock."""
    if now is not None:
        try:
            return parse_date(now, field="--now")
        except DateParseError as exc:
            raise typer.BadParameter(str(exc), param_hint="--now")
    try:
        return resolve_now(env_var=settings.env_var)
    except ConfigurationError as exc:
        raise _fail(str(exc))


def _show_progress(progress: Optional[bool]) -> bool:
    return sys.stderr.isatty() if progress is None else progress


def _deadline(annotation: Annotation) -> tuple:
    """Sort key: soonest parsed deadline first, malformed annotations on top."""
    try:
        policy = annotation.policy()
    except ConfigurationError:
        return (0, 0, 0)
    date = policy.expiry_date or policy.review_date
    return (1, date.year, date.month)


# --------------------------------- CLI ---------------------------------------

@app.command("check")
def check(
    paths: List[Path] = typer.Argument(..., exists=True, readable=True, help="Files and/or directories to scan."),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluate as of this month (MM.YYYY)."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False,
                                          help="YAML/JSON settings file (default: pyproject.toml)."),
    output_format: str = typer.Option("text", "--format", "-f", help="Output: text|json"),
    strict: Optional[bool] = typer.Option(None, "--strict/--no-strict", help="Treat warnings as failures."),
    progress: Optional[bool] = typer.Option(None, "--progress/--no-progress", help="Show a progress bar."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Scan sources and fail when annotated code has expired."""
    _configure_logging(verbose)
    fmt = output_format.lower()
    if fmt not in {"text", "json"}:
        raise typer.BadParameter("--format must be text or json", param_hint="--format")

    settings = _load(config).merged(fail_on_warning=strict)
    current = _effective_now(now, settings)
    LOGGER.debug("Settings from %s; evaluating as of %s", settings.source or "defaults", current)
    report = run_check(paths, current, settings, progress=_show_progress(progress) and fmt == "text")

    if fmt == "json":
        typer.echo(json.dumps(report.to_dict(), indent=2, sort_keys=True))
    else:
        for finding in report.findings:
            color = typer.colors.RED if finding.fatal else typer.colors.YELLOW
            typer.secho(str(finding), fg=color)
        for skipped in report.skipped:
            typer.secho(f"{skipped.path}: skipped ({skipped.reason})", fg=typer.colors.BRIGHT_BLACK, err=True)
        typer.secho(report.summary(), fg=typer.colors.RED if report.failed else typer.colors.GREEN)
    raise typer.Exit(code=report.exit_code)


@app.command("evaluate")
def evaluate_command(
    review: Optional[str] = typer.Argument(None, help="Review date (MM.YYYY)."),
    expires: Optional[str] = typer.Option(None, "--expires", help="Hard expiry date (MM.YYYY)."),
    message: Optional[str] = typer.Option(None, "--message", help="Custom diagnostic text."),
    target: Optional[str] = typer.Option(None, "--target", help="Name used in the default message."),
    now: Optional[str] = typer.Option(None, "--now", help="Evaluate as of this month (MM.YYYY)."),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
) -> None:
    """Evaluate a single policy without scanning any files."""
    try:
        policy = Policy.from_arguments(review, expires=expires, message=message)
    except ConfigurationError as exc:
        raise _fail(str(exc), code=1)
    current = _effective_now(now, Settings())
    decision = evaluate(policy, current, target=target)
    diagnostic = format_diagnostic(decision, policy, target=target)

    if as_json:
        payload = {
            **policy.to_dict(),
            "now": str(current),
            "decision": decision.kind.value,
            "message": diagnostic.message if diagnostic else None,
        }
        typer.echo(json.dumps(payload, indent=2, sort_keys=True))
    elif diagnostic is None:
        typer.secho(f"OK: valid as of {current}", fg=typer.colors.GREEN)
    else:
        color = typer.colors.RED if diagnostic.fatal else typer.colors.YELLOW
        typer.secho(diagnostic.render(), fg=color)
    raise typer.Exit(code=1 if decision.kind is DecisionKind.FAIL else 0)


@app.command("list")
def list_command(
    paths: List[Path] = typer.Argument(..., exists=True, readable=True, help="Files and/or directories to scan."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, dir_okay=False),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
) -> None:
    """List annotations, soonest deadline first."""
    settings = _load(config)
    scan = scan_paths(paths, settings)
    annotations = sorted(scan.annotations, key=_deadline)

    if as_json:
        rows = [
            {
                "path": a.path,
                "line": a.line,
                "target": a.target,
                "kind": a.kind,
                "review": a.review,
                "expires": a.expires,
                "message": a.message,
                "error": str(a.error) if a.error else None,
            }
            for a in annotations
        ]
        typer.echo(json.dumps(rows, indent=2))
        return

    if not annotations:
        typer.secho("No annotations found.", fg=typer.colors.YELLOW)
        return
    for a in annotations:
        dates = f"review={a.review or '-'} expires={a.expires or '-'}"
        typer.echo(f"{a.path}:{a.line}: {a.target} [{a.kind}] {dates}")


def main() -> None:
    app()


__all__ = ["app", "check", "evaluate_command", "list_command", "main"]
