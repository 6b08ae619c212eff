from dataclasses import dataclass
from enum import StrEnum


REPORT_IDENTIFIER = "<!-- test-coverage-reporter-output -->"


class FileStatus(StrEnum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"


@dataclass(frozen=True)
class PullRequestInfo:
    id: str
    title: str
    author_username: str
    source_branch: str
    target_branch: str
    head_sha: str
    web_url: str
    commit_url_base: str

    @property
    def commit_url(self) -> str:
        return f"{self.commit_url_base}/{self.head_sha}"


@dataclass(frozen=True)
class FileChange:
    path: str
    old_path: str | None
    status: FileStatus


@dataclass(frozen=True)
class Comment:
    id: str
    author_username: str
    body: str
    created_at: str
    updated_at: str | None

    @property
    def is_report_comment(self) -> bool:
        return REPORT_IDENTIFIER in (self.body or "")
