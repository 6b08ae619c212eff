from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from enum import StrEnum
import json
import math
from pathlib import Path
from types import MappingProxyType
from typing import Any

from covdiff.exceptions import MalformedCoverageError
from covdiff.logger import get_logger


TOTAL_KEY = "total"

logger = get_logger("coverage")


class MetricKind(StrEnum):
    LINES = "lines"
    STATEMENTS = "statements"
    FUNCTIONS = "functions"
    BRANCHES = "branches"


@dataclass(frozen=True, slots=True)
class CoverageMetric:
    total: int
    percent_covered: float


@dataclass(frozen=True, slots=True)
class FileCoverage:
    lines: CoverageMetric
    statements: CoverageMetric
    functions: CoverageMetric
    branches: CoverageMetric

    def metric(self, kind: MetricKind) -> CoverageMetric:
        return getattr(self, kind.value)  # type: ignore[no-any-return]


class CoverageSnapshot(Mapping[str, FileCoverage]):
    """Read-only view of one coverage summary, keyed by file path.

    The reserved ``total`` key holds the aggregate for the whole run and
    is always present.
    """

    def __init__(self, entries: Mapping[str, FileCoverage], source: str = "") -> None:
        if TOTAL_KEY not in entries:
            raise MalformedCoverageError(
                f"missing aggregate '{TOTAL_KEY}' entry", source=source or None
            )
        self._entries = MappingProxyType(dict(entries))
        self.source = source

    def __getitem__(self, key: str) -> FileCoverage:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def total(self) -> FileCoverage:
        return self._entries[TOTAL_KEY]

    def file_keys(self) -> list[str]:
        return [key for key in self._entries if key != TOTAL_KEY]


def _parse_number(value: Any, field: str, source: str) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedCoverageError(
            f"{field} must be numeric, got {value!r}", source=source
        )
    if not math.isfinite(value):
        raise MalformedCoverageError(f"{field} is not finite: {value!r}", source=source)
    return float(value)


def _parse_metric(data: Any, field: str, source: str) -> CoverageMetric:
    if not isinstance(data, dict):
        raise MalformedCoverageError(f"{field} must be an object", source=source)

    total = _parse_number(data.get("total"), f"{field}.total", source)
    if total < 0 or not total.is_integer():
        raise MalformedCoverageError(
            f"{field}.total must be a non-negative integer", source=source
        )

    pct = data.get("pct")
    # Istanbul reports "Unknown" when a file has nothing to cover
    if pct == "Unknown" and total == 0:
        percent = 100.0
    else:
        percent = _parse_number(pct, f"{field}.pct", source)
    if not 0 <= percent <= 100:
        raise MalformedCoverageError(
            f"{field}.pct out of range [0, 100]: {percent}", source=source
        )

    return CoverageMetric(total=int(total), percent_covered=percent)


def _parse_file(data: Any, path: str, source: str) -> FileCoverage:
    if not isinstance(data, dict):
        raise MalformedCoverageError(
            f"entry for '{path}' must be an object", source=source
        )
    missing = [kind.value for kind in MetricKind if kind.value not in data]
    if missing:
        raise MalformedCoverageError(
            f"entry for '{path}' is missing {', '.join(missing)}", source=source
        )
    metrics = {
        kind.value: _parse_metric(data[kind.value], f"{path}.{kind.value}", source)
        for kind in MetricKind
    }
    return FileCoverage(**metrics)


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def parse_coverage(data: Any, source: str = "<memory>") -> CoverageSnapshot:
    if not isinstance(data, dict):
        raise MalformedCoverageError("coverage summary must be a JSON object", source)
    if TOTAL_KEY not in data:
        raise MalformedCoverageError(
            f"missing aggregate '{TOTAL_KEY}' entry", source=source
        )

    entries: dict[str, FileCoverage] = {}
    for raw_path, file_data in data.items():
        path = raw_path if raw_path == TOTAL_KEY else normalize_path(raw_path)
        entries[path] = _parse_file(file_data, path, source)

    logger.debug(f"Parsed {len(entries) - 1} file entries from {source}")
    return CoverageSnapshot(entries, source=source)


def load_coverage(path: str | Path) -> CoverageSnapshot:
    path = Path(path)
    if not path.is_file():
        raise MalformedCoverageError("coverage file not found", source=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedCoverageError(f"invalid JSON: {e}", source=str(path)) from e
    except OSError as e:
        raise MalformedCoverageError(f"cannot read file: {e}", source=str(path)) from e

    return parse_coverage(data, source=str(path))
