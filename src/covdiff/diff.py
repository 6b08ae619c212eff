from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from covdiff.coverage import (
    TOTAL_KEY,
    CoverageSnapshot,
    FileCoverage,
    MetricKind,
)
from covdiff.exceptions import MalformedCoverageError
from covdiff.formatting import percent_delta
from covdiff.logger import get_logger


logger = get_logger("diff")


@dataclass(frozen=True, slots=True)
class CoverageDiff:
    total: int
    percent: float
    diff: float


@dataclass(frozen=True, slots=True)
class DiffSummary:
    lines: CoverageDiff
    statements: CoverageDiff
    functions: CoverageDiff
    branches: CoverageDiff
    is_new_file: bool = False

    def metric(self, kind: MetricKind) -> CoverageDiff:
        return getattr(self, kind.value)  # type: ignore[no-any-return]

    def metrics(self) -> Iterator[tuple[MetricKind, CoverageDiff]]:
        for kind in MetricKind:
            yield kind, self.metric(kind)


class DiffReport(Mapping[str, DiffSummary]):
    """Per-file diffs plus the aggregate under ``total``, in report order."""

    def __init__(self, entries: Mapping[str, DiffSummary]) -> None:
        if TOTAL_KEY not in entries:
            raise MalformedCoverageError(f"diff report has no '{TOTAL_KEY}' entry")
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, key: str) -> DiffSummary:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total(self) -> DiffSummary:
        return self._entries[TOTAL_KEY]

    def files(self) -> list[tuple[str, DiffSummary]]:
        return [(path, s) for path, s in self._entries.items() if path != TOTAL_KEY]


def summarize(current: FileCoverage, base: FileCoverage | None) -> DiffSummary:
    diffs: dict[str, CoverageDiff] = {}
    for kind in MetricKind:
        metric = current.metric(kind)
        base_percent = base.metric(kind).percent_covered if base else 0.0
        diffs[kind.value] = CoverageDiff(
            total=metric.total,
            percent=metric.percent_covered,
            diff=percent_delta(metric.percent_covered, base_percent),
        )
    return DiffSummary(**diffs, is_new_file=base is None)


def compute_diff(
    current: CoverageSnapshot,
    base: CoverageSnapshot | Mapping[str, FileCoverage],
    membership: Callable[[str], bool],
    base_key: Callable[[str], str | None] | None = None,
) -> DiffReport:
    """Diff every in-PR file of ``current`` against ``base``.

    Args:
        current: Coverage of the PR head.
        base: Coverage of the target branch.
        membership: Decides whether a current key is one of the PR's files.
        base_key: Maps a current key to the equivalent key in ``base``.
            Defaults to the identity; ``None`` results mean "no base entry".

    Raises:
        MalformedCoverageError: If ``current`` has no aggregate entry.
    """
    if TOTAL_KEY not in current:
        raise MalformedCoverageError(f"current coverage has no '{TOTAL_KEY}' entry")

    entries: dict[str, DiffSummary] = {}
    for key, file_coverage in current.items():
        if key == TOTAL_KEY:
            entries[key] = summarize(file_coverage, base.get(TOTAL_KEY))
            continue
        if not membership(key):
            continue

        lookup = base_key(key) if base_key else key
        base_coverage = base.get(lookup) if lookup is not None else None
        entries[key] = summarize(file_coverage, base_coverage)

    new_files = sum(
        1
        for key, summary in entries.items()
        if key != TOTAL_KEY and summary.is_new_file
    )
    logger.info(
        f"Computed diff for {len(entries) - 1} files ({new_files} new to coverage)"
    )
    return DiffReport(entries)
