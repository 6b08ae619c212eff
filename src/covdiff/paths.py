"""Alignment between PR file paths and coverage report keys.

The source-control host lists changed files relative to the repository
root (``src/app.ts``) while coverage tools key their reports by whatever
path the test runner saw (``/home/runner/work/repo/repo/web/src/app.ts``).
The prefix that bridges the two is found with a scored candidate search:
every coverage key that ends with a changed file proposes the leading
part as a candidate, and the candidate that maps the most changed files
onto existing keys wins.
"""

from collections.abc import Collection, Iterable, Sequence
from dataclasses import dataclass

from covdiff.coverage import TOTAL_KEY
from covdiff.logger import get_logger


logger = get_logger("paths")


def path_depth(path: str) -> int:
    return len([segment for segment in path.split("/") if segment])


def sort_by_depth(files: Iterable[str]) -> list[str]:
    """Shallow paths first; ``sorted`` is stable so ties keep their order."""
    return sorted(files, key=path_depth)


def _on_segment_boundary(key: str, suffix: str) -> bool:
    start = len(key) - len(suffix)
    return start == 0 or suffix.startswith("/") or key[start - 1] == "/"


def _strip_literal(key: str, prefix: str) -> str | None:
    if not key.startswith(prefix):
        return None
    return key[len(prefix) :]


def _score(candidate: str, changed_files: Iterable[str], keys: Collection[str]) -> int:
    return sum(1 for path in changed_files if candidate + path in keys)


def _candidates(changed_files: Sequence[str], keys: Iterable[str]) -> list[str]:
    candidates: dict[str, None] = {}
    key_list = list(keys)
    for path in changed_files:
        if not path:
            continue
        for key in key_list:
            if key.endswith(path) and _on_segment_boundary(key, path):
                candidates.setdefault(key[: len(key) - len(path)], None)
    return list(candidates)


def discover_prefix(
    changed_files: Sequence[str],
    coverage_keys: Iterable[str],
    strip_prefix: str = "",
) -> str:
    """Find the prefix that turns changed-file paths into coverage keys.

    Args:
        changed_files: Repository-relative paths changed by the PR.
        coverage_keys: Keys of one coverage snapshot. The aggregate key is
            ignored if present.
        strip_prefix: Literal prefix removed from every key before the
            search. When the stripped keys already line up with every changed
            file the search is skipped and ``""`` is returned.

    Returns:
        The best scoring prefix, or ``""`` when no candidate maps a single
        changed file onto a key. The prefix applies to keys after
        ``strip_prefix`` has been removed.
    """
    keys = {
        stripped: None
        for key in coverage_keys
        if key != TOTAL_KEY
        and (stripped := _strip_literal(key, strip_prefix)) is not None
    }
    if not changed_files or not keys:
        return ""

    ordered = sort_by_depth(changed_files)
    if strip_prefix and _score("", ordered, keys) == len(ordered):
        logger.debug(f"Strip prefix '{strip_prefix}' aligns paths on its own")
        return ""

    candidates = _candidates(ordered, keys)

    best = ""
    best_score = 0
    for candidate in candidates:
        score = _score(candidate, ordered, keys)
        if score > best_score or (
            score == best_score and score > 0 and len(candidate) > len(best)
        ):
            best, best_score = candidate, score

    return best


def is_in_pr(coverage_key: str, prefix: str, changed_files: Collection[str]) -> bool:
    """Exact-path membership test after removing ``prefix`` from the key."""
    relative = _strip_literal(coverage_key, prefix)
    return relative is not None and relative in changed_files


@dataclass(frozen=True)
class PathAlignment:
    """Prefixes that map one snapshot's keys onto repository paths."""

    prefix: str = ""
    strip_prefix: str = ""

    @property
    def full_prefix(self) -> str:
        return self.strip_prefix + self.prefix

    def relative(self, coverage_key: str) -> str | None:
        return _strip_literal(coverage_key, self.full_prefix)

    def key_for(self, relative_path: str) -> str:
        return self.full_prefix + relative_path

    def contains(self, coverage_key: str, changed_files: Collection[str]) -> bool:
        if coverage_key == TOTAL_KEY:
            return False
        return is_in_pr(coverage_key, self.full_prefix, changed_files)


class PathReconciler:
    def __init__(self, changed_files: Iterable[str], strip_prefix: str = "") -> None:
        self.changed_files = sort_by_depth(dict.fromkeys(changed_files))
        self.changed_set = frozenset(self.changed_files)
        self.strip_prefix = strip_prefix

    def align(
        self, coverage_keys: Iterable[str], label: str = "coverage"
    ) -> PathAlignment:
        keys = list(coverage_keys)
        prefix = discover_prefix(self.changed_files, keys, self.strip_prefix)
        alignment = PathAlignment(prefix=prefix, strip_prefix=self.strip_prefix)

        matched = sum(1 for key in keys if alignment.contains(key, self.changed_set))
        if not self.changed_files:
            logger.info(f"No changed files in PR; {label} report has only the total")
        elif matched == 0:
            logger.warning(
                f"None of {len(self.changed_files)} changed files matched a "
                f"{label} key; check strip_path_prefix"
            )
        else:
            logger.info(
                f"Aligned {matched} {label} entries with prefix "
                f"'{alignment.full_prefix}'"
            )
        return alignment

    def contains(self, alignment: PathAlignment, coverage_key: str) -> bool:
        return alignment.contains(coverage_key, self.changed_set)
