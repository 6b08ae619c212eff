from collections.abc import Iterable
from dataclasses import dataclass, field
import logging
from typing import Any

from covdiff.client import GitClient, GitProvider
from covdiff.clients.factory import GitClientFactory
from covdiff.config import CovdiffConfig, ReportOptions
from covdiff.coverage import CoverageSnapshot, load_coverage
from covdiff.diff import DiffReport, compute_diff
from covdiff.logger import get_logger
from covdiff.models import Comment, FileStatus, PullRequestInfo
from covdiff.output import get_template_vars
from covdiff.paths import PathAlignment, PathReconciler
from covdiff.render import CommentRenderer
from covdiff.security import SecurityValidator


logger = get_logger("app")


class ConfigAdapter:
    def __init__(self, config: CovdiffConfig):
        self._config = config

    @property
    def provider(self) -> GitProvider | None:
        return self._config.provider

    @property
    def token(self) -> str:
        return self._config.token

    @property
    def repo_identifier(self) -> str:
        return self._config.repo

    @property
    def base_url(self) -> str | None:
        return self._config.base_url

    @property
    def logger(self) -> Any | None:
        logger = logging.getLogger("covdiff")
        logger.setLevel(self._config.log_level)
        return logger

    @property
    def cache_ttl(self) -> int:
        return self._config.cache_ttl

    @property
    def cache_maxsize(self) -> int:
        return 500

    @property
    def max_retries(self) -> int:
        return self._config.max_retries

    @property
    def backoff_factor(self) -> float:
        return self._config.backoff_factor

    @property
    def per_page(self) -> int:
        return 100

    @property
    def timeout(self) -> int:
        return self._config.timeout


@dataclass(frozen=True)
class ReportResult:
    report: DiffReport
    template_vars: dict[str, Any]
    current_alignment: PathAlignment
    base_alignment: PathAlignment
    changed_files: list[str] = field(default_factory=list)

    @property
    def failure_percent(self) -> str | None:
        value: str | None = self.template_vars["coverage_file_failure_percent"]
        return value

    @property
    def failed(self) -> bool:
        return self.failure_percent is not None


def compare_coverage(
    changed_files: Iterable[str],
    current: CoverageSnapshot,
    base: CoverageSnapshot,
    options: ReportOptions,
    pr_info: PullRequestInfo | None = None,
) -> ReportResult:
    """Run path alignment, diffing and classification for one comparison."""
    reconciler = PathReconciler(changed_files, strip_prefix=options.strip_path_prefix)
    current_alignment = reconciler.align(current.file_keys(), label="current")
    base_alignment = reconciler.align(base.file_keys(), label="base")
    if current_alignment != base_alignment:
        logger.warning(
            f"Base coverage uses prefix '{base_alignment.full_prefix}' while "
            f"current uses '{current_alignment.full_prefix}'"
        )

    def base_key(key: str) -> str | None:
        relative = current_alignment.relative(key)
        return None if relative is None else base_alignment.key_for(relative)

    report = compute_diff(
        current,
        base,
        membership=lambda key: reconciler.contains(current_alignment, key),
        base_key=base_key,
    )
    template_vars = get_template_vars(
        report,
        options,
        commit_sha=pr_info.head_sha if pr_info else "",
        commit_url=pr_info.commit_url if pr_info else "",
    )
    return ReportResult(
        report=report,
        template_vars=template_vars,
        current_alignment=current_alignment,
        base_alignment=base_alignment,
        changed_files=reconciler.changed_files,
    )


class CoverageReporterApplication:
    def __init__(self, config: CovdiffConfig):
        self.config = config
        self._client: GitClient | None = None
        self._renderer: CommentRenderer | None = None

    @property
    def client(self) -> GitClient:
        if self._client is None:
            adapter = ConfigAdapter(self.config)
            self._client = GitClientFactory.create(adapter)
        return self._client

    @property
    def renderer(self) -> CommentRenderer:
        if self._renderer is None:
            self._renderer = CommentRenderer(self.config.template_path)
        return self._renderer

    @classmethod
    def from_env(cls) -> "CoverageReporterApplication":
        config = CovdiffConfig.from_env()
        return cls(config)

    @classmethod
    def from_file(cls, path: str) -> "CoverageReporterApplication":
        config = CovdiffConfig.from_file(path)
        return cls(config)

    def load_snapshots(self) -> tuple[CoverageSnapshot, CoverageSnapshot]:
        current_path = SecurityValidator.validate_coverage_path(
            self.config.coverage_path
        )
        base_path = SecurityValidator.validate_coverage_path(
            self.config.base_coverage_path
        )
        logger.info(f"Loading coverage from {current_path.name} and {base_path.name}")
        return load_coverage(current_path), load_coverage(base_path)

    def fetch_changed_files(self, pr_id: str) -> list[str]:
        changes = self.client.get_changed_files(pr_id)
        files = [c.path for c in changes if c.status != FileStatus.DELETED]
        logger.info(f"PR {pr_id} changes {len(files)} files")
        return files

    def diff_files(self, changed_files: Iterable[str]) -> ReportResult:
        current, base = self.load_snapshots()
        return compare_coverage(
            changed_files, current, base, self.config.report_options()
        )

    def build_report(self, pr_id: str) -> ReportResult:
        pr_info = self.client.get_pr_info(pr_id)
        changed_files = self.fetch_changed_files(pr_id)
        current, base = self.load_snapshots()
        return compare_coverage(
            changed_files, current, base, self.config.report_options(), pr_info
        )

    def render_comment(self, result: ReportResult) -> str:
        return self.renderer.render(result.template_vars)

    def find_report_comment(self, pr_id: str) -> Comment | None:
        for comment in self.client.get_existing_comments(pr_id):
            if comment.is_report_comment:
                return comment
        return None

    def publish(self, pr_id: str, body: str) -> None:
        existing = self.find_report_comment(pr_id)
        if existing is not None:
            logger.info(f"Updating coverage comment {existing.id} on PR {pr_id}")
            self.client.update_comment(pr_id, existing.id, body)
        else:
            logger.info(f"Posting coverage comment on PR {pr_id}")
            self.client.post_comment(pr_id, body)

    def run(self, pr_id: str, post: bool = True) -> tuple[ReportResult, str]:
        result = self.build_report(pr_id)
        body = self.render_comment(result)
        if post:
            self.publish(pr_id, body)
        if result.failed:
            logger.error(
                f"Coverage of a changed file dropped by {result.failure_percent}% "
                f"(allowed: {self.config.fail_delta}%)"
            )
        return result, body

