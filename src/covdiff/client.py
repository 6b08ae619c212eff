from abc import ABC, abstractmethod
from enum import StrEnum

from covdiff.models import Comment, FileChange, PullRequestInfo


class GitProvider(StrEnum):
    GITHUB = "github"
    GITLAB = "gitlab"


class GitClient(ABC):
    @abstractmethod
    def get_pr_info(self, pr_id: str) -> PullRequestInfo:
        raise NotImplementedError

    @abstractmethod
    def get_changed_files(self, pr_id: str) -> list[FileChange]:
        raise NotImplementedError

    @abstractmethod
    def get_existing_comments(self, pr_id: str) -> list[Comment]:
        raise NotImplementedError

    @abstractmethod
    def post_comment(self, pr_id: str, comment: str) -> None:
        raise NotImplementedError

    @abstractmethod
    def update_comment(self, pr_id: str, comment_id: str, comment: str) -> None:
        raise NotImplementedError
