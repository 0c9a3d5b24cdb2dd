"""Build-time check: evaluate every discovered annotation independently."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .config import Settings
from .dates import CalendarDate
from .diagnostics import (
    CollectingChannel,
    DiagnosticChannel,
    Location,
    RenderedDiagnostic,
    configuration_diagnostic,
    format_diagnostic,
)
from .errors import ConfigurationError
from .policy import DecisionKind, evaluate
from .scanner import Annotation, SkippedFile, scan_paths

__all__ = ["CheckReport", "Finding", "check_annotation", "run_check"]

LOGGER = logging.getLogger("bestbefore.checker")


@dataclass(frozen=True)
class Finding:
    """A diagnostic tied to the annotation that produced it."""

    annotation: Annotation
    diagnostic: RenderedDiagnostic
    kind: str  # "review" | "expired" | "config"

    @property
    def fatal(self) -> bool:
        return self.diagnostic.fatal

    def to_dict(self) -> Dict[str, Any]:
        data = self.diagnostic.to_dict()
        data.update(
            kind=self.kind,
            review=self.annotation.review,
            expires=self.annotation.expires,
        )
        return data

    def __str__(self) -> str:
        return self.diagnostic.render()


@dataclass
class CheckReport:
    now: CalendarDate
    files: int = 0
    annotations: int = 0
    findings: List[Finding] = field(default_factory=list)
    skipped: List[SkippedFile] = field(default_factory=list)
    fail_on_warning: bool = False
    truncated: bool = False

    @property
    def errors(self) -> List[Finding]:
        return [f for f in self.findings if f.fatal]

    @property
    def warnings(self) -> List[Finding]:
        return [f for f in self.findings if not f.fatal]

    @property
    def failed(self) -> bool:
        if self.errors:
            return True
        return self.fail_on_warning and bool(self.warnings)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0

    def summary(self) -> str:
        text = (
            f"{self.annotations} annotation(s) in {self.files} file(s) checked against {self.now}: "
            f"{len(self.errors)} error(s), {len(self.warnings)} warning(s)"
        )
        if self.truncated:
            text += " (scan stopped at max_files; remaining files were not checked)"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "now": str(self.now),
            "files": self.files,
            "annotations": self.annotations,
            "errors": len(self.errors),
            "warnings": len(self.warnings),
            "failed": self.failed,
            "truncated": self.truncated,
            "findings": [f.to_dict() for f in self.findings],
            "skipped": [{"path": s.path, "reason": s.reason} for s in self.skipped],
        }


def check_annotation(
    annotation: Annotation,
    now: CalendarDate,
    *,
    channel: Optional[DiagnosticChannel] = None,
) -> Optional[Finding]:
    """Evaluate one annotation; configuration errors become fatal findings."""
    location = Location(annotation.path, annotation.line)
    try:
        policy = annotation.policy()
    except ConfigurationError as exc:
        diagnostic = configuration_diagnostic(exc, location=location, target=annotation.target)
        kind = "config"
    else:
        decision = evaluate(policy, now, target=annotation.target)
        rendered = format_diagnostic(decision, policy, location=location, target=annotation.target)
        if rendered is None:
            return None
        diagnostic = rendered
        kind = "expired" if decision.kind is DecisionKind.FAIL else "review"
    if channel is not None:
        channel.emit(diagnostic)
    return Finding(annotation, diagnostic, kind)


def run_check(
    paths: Iterable[Path],
    now: CalendarDate,
    settings: Optional[Settings] = None,
    *,
    progress: bool = False,
) -> CheckReport:
    """Scan *paths* and evaluate every annotation against *now*."""
    settings = settings or Settings()
    scan = scan_paths(paths, settings, progress=progress)
    for skipped in scan.skipped:
        LOGGER.warning("Skipped %s (%s)", skipped.path, skipped.reason)

    channel = CollectingChannel()
    report = CheckReport(
        now=now,
        files=scan.files,
        annotations=len(scan.annotations),
        skipped=list(scan.skipped),
        fail_on_warning=settings.fail_on_warning,
        truncated=scan.truncated,
    )
    for annotation in scan.annotations:
        finding = check_annotation(annotation, now, channel=channel)
        if finding is not None:
            report.findings.append(finding)
    LOGGER.info("%s", report.summary())
    return report
