"""Partition diffed files and pick the worst per-file regression.

A file counts as changed when any metric's diff is non-zero *after*
rounding to one decimal, so a raw diff of ``0.01`` stays unchanged.
"""

from dataclasses import dataclass, field

from covdiff.coverage import MetricKind
from covdiff.diff import DiffReport, DiffSummary
from covdiff.exceptions import ValidationError
from covdiff.formatting import decimal_to_string, is_zero_after_rounding


@dataclass(frozen=True, slots=True)
class FileSummary:
    filepath: str
    summary: DiffSummary


@dataclass(frozen=True)
class Classification:
    changed: list[FileSummary] = field(default_factory=list)
    unchanged: list[FileSummary] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class Regression:
    filepath: str
    metric: MetricKind
    diff: float


def has_changed(summary: DiffSummary) -> bool:
    return any(not is_zero_after_rounding(d.diff) for _, d in summary.metrics())


def classify(report: DiffReport) -> Classification:
    result = Classification()
    for filepath, summary in report.files():
        bucket = result.changed if has_changed(summary) else result.unchanged
        bucket.append(FileSummary(filepath=filepath, summary=summary))
    return result


def worst_regression(report: DiffReport, fail_delta: float) -> Regression | None:
    """Return the largest per-file drop whose size exceeds ``fail_delta``."""
    if fail_delta < 0:
        raise ValidationError(f"fail_delta must be non-negative, got {fail_delta}")

    worst: Regression | None = None
    for filepath, summary in report.files():
        for kind, coverage_diff in summary.metrics():
            diff = coverage_diff.diff
            if diff >= 0 or abs(diff) <= fail_delta:
                continue
            if worst is None or diff < worst.diff:
                worst = Regression(filepath=filepath, metric=kind, diff=diff)
    return worst


def worst_failure_percent(report: DiffReport, fail_delta: float) -> str | None:
    worst = worst_regression(report, fail_delta)
    if worst is None:
        return None
    return decimal_to_string(abs(worst.diff))
