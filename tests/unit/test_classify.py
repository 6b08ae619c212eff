import pytest

from covdiff.classify import (
    classify,
    has_changed,
    worst_failure_percent,
    worst_regression,
)
from covdiff.coverage import MetricKind
from covdiff.diff import CoverageDiff, DiffReport, DiffSummary
from covdiff.exceptions import ValidationError


def _summary(
    lines: float = 0.0,
    statements: float = 0.0,
    functions: float = 0.0,
    branches: float = 0.0,
) -> DiffSummary:
    return DiffSummary(
        lines=CoverageDiff(total=10, percent=50.0, diff=lines),
        statements=CoverageDiff(total=10, percent=50.0, diff=statements),
        functions=CoverageDiff(total=10, percent=50.0, diff=functions),
        branches=CoverageDiff(total=10, percent=50.0, diff=branches),
    )


def _report(**files: DiffSummary) -> DiffReport:
    return DiffReport({"total": _summary(), **files})


def test_should_ignore_diffs_that_round_to_zero() -> None:
    assert has_changed(_summary(lines=0.01, branches=-0.04)) is False
    assert has_changed(_summary(functions=0.05)) is True


def test_should_partition_files_and_keep_report_order() -> None:
    report = DiffReport(
        {
            "total": _summary(lines=-5),
            "a.ts": _summary(lines=0.01),
            "b.ts": _summary(lines=1),
            "c.ts": _summary(),
            "d.ts": _summary(branches=-1),
        }
    )

    result = classify(report)

    assert [f.filepath for f in result.changed] == ["b.ts", "d.ts"]
    assert [f.filepath for f in result.unchanged] == ["a.ts", "c.ts"]


def test_should_never_classify_total() -> None:
    result = classify(DiffReport({"total": _summary(lines=10)}))

    assert result.changed == []
    assert result.unchanged == []


def test_should_pick_largest_drop_above_fail_delta() -> None:
    report = DiffReport(
        {
            "total": _summary(lines=-50),
            "a.ts": _summary(lines=-1),
            "b.ts": _summary(statements=-2.123),
            "c.ts": _summary(branches=-1.5),
        }
    )

    worst = worst_regression(report, 0.2)

    assert worst is not None
    assert worst.filepath == "b.ts"
    assert worst.metric == MetricKind.STATEMENTS
    assert worst_failure_percent(report, 0.2) == "2.1"


def test_should_not_fail_on_increases() -> None:
    report = _report(**{"a.ts": _summary(lines=3.45)})

    assert worst_regression(report, 0.2) is None
    assert worst_failure_percent(report, 0.2) is None


def test_should_allow_drops_within_fail_delta() -> None:
    report = _report(**{"a.ts": _summary(lines=-0.2, functions=-0.1)})

    assert worst_failure_percent(report, 0.2) is None


def test_should_fail_on_any_drop_when_fail_delta_is_zero() -> None:
    report = _report(**{"a.ts": _summary(lines=-0.01)})

    assert worst_failure_percent(report, 0) == "0"


def test_should_reject_negative_fail_delta() -> None:
    with pytest.raises(ValidationError):
        worst_regression(_report(), -0.1)
