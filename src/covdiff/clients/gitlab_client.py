from collections.abc import Callable
import re
from typing import Any, TypeVar

from gitlab import Gitlab
from gitlab.exceptions import GitlabAuthenticationError, GitlabError
import requests

from covdiff.adapters.gitlab_mapper import (
    GitLabChange,
    GitLabMapper,
    GitLabMergeRequest,
    GitLabNote,
)
from covdiff.clients.base import BaseGitClient
from covdiff.clients.mixins.pagination import PaginationMixin
from covdiff.clients.mixins.retry import RetryMixin
from covdiff.exceptions import (
    APIError,
    AuthenticationError,
    CovdiffException,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
    TimeoutError,
)
from covdiff.logger import get_logger
from covdiff.models import Comment, FileChange, PullRequestInfo


R = TypeVar("R")


class GitLabClient(RetryMixin, PaginationMixin, BaseGitClient[Gitlab]):
    MAX_FILES_PER_MR = 3000
    MAX_COMMENTS_PER_MR = 1000

    SENSITIVE_PATTERNS = [
        re.compile(r"token[=:][\S]{1,100}", re.IGNORECASE),
        re.compile(r"glpat-[\S]{20,}", re.IGNORECASE),
        re.compile(r"private[_-]?token[=:\s]+[\S]{1,100}", re.IGNORECASE),
    ]

    def __init__(
        self,
        token: str,
        repo_identifier: str,
        base_url: str | None = None,
        logger: Any | None = None,
        cache_ttl: int = 300,
        cache_maxsize: int = 500,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
        per_page: int = 100,
        timeout: int = 30,
    ) -> None:
        self._validate_repo_identifier(repo_identifier)
        client = Gitlab(
            url=base_url or "https://gitlab.com",
            private_token=token,
            per_page=min(per_page, 100),
            timeout=timeout,
        )
        super().__init__(
            client=client,
            repo_identifier=repo_identifier,
            logger=logger or get_logger(self.__class__.__name__),
            cache_ttl=cache_ttl,
            cache_maxsize=cache_maxsize,
            max_retries=max_retries,
            backoff_factor=backoff_factor,
        )
        self.per_page = min(per_page, 100)
        self.mapper = GitLabMapper()

    @staticmethod
    def _validate_repo_identifier(identifier: str) -> None:
        if len(identifier) > 255:
            raise ValueError("Repository identifier too long")

        if identifier.isdigit():
            if not (1 <= int(identifier) <= 2147483647):
                raise ValueError("Invalid project ID range")
        else:
            parts = identifier.split("/")
            if len(parts) < 2:
                raise ValueError("Invalid repository identifier format")

            valid_chars = set(
                "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_/.~"
            )
            if not all(c in valid_chars for c in identifier):
                raise ValueError("Invalid characters in repository identifier")

    def _validate_mr_id(self, mr_id: str) -> int:
        try:
            mr_id_int = int(mr_id)
        except (ValueError, TypeError) as e:
            raise ResourceNotFoundError(f"Invalid MR ID: {mr_id}") from e
        if not (1 <= mr_id_int <= 2147483647):
            raise ResourceNotFoundError("MR ID out of valid range")
        return mr_id_int

    def _validate_comment_id(self, comment_id: str) -> int:
        try:
            comment_id_int = int(comment_id)
        except (ValueError, TypeError) as e:
            raise ResourceNotFoundError(f"Invalid comment ID: {comment_id}") from e
        if not (1 <= comment_id_int <= 2147483647):
            raise ResourceNotFoundError("Comment ID out of valid range")
        return comment_id_int

    def _sanitize_error_message(self, error: Exception, context: str) -> str:
        error_msg = str(error)[:5000]

        for pattern in self.SENSITIVE_PATTERNS:
            error_msg = pattern.sub("[REDACTED]", error_msg)

        if len(error_msg) > 500:
            error_msg = error_msg[:497] + "..."

        return f"{context}: {error_msg}"

    @staticmethod
    def _as_transient(func: Callable[[], R]) -> Callable[[], R]:
        def call() -> R:
            try:
                return func()
            except GitlabError as e:
                code = getattr(e, "response_code", None)
                if code == 429:
                    raise RateLimitError(None, "GitLab rate limit exceeded") from e
                if code in (502, 503, 504):
                    raise NetworkError(
                        f"GitLab service temporarily unavailable: {code}"
                    ) from e
                raise
            except requests.exceptions.Timeout as e:
                raise TimeoutError("GitLab request timed out") from e
            except requests.exceptions.ConnectionError as e:
                raise NetworkError("Could not connect to GitLab") from e

        return call

    def _call(self, func: Callable[[], R], context: str) -> R:
        wrapped = self.with_retry(self._as_transient(func))
        try:
            return wrapped()  # type: ignore[no-any-return]
        except CovdiffException:
            raise
        except GitlabAuthenticationError as e:
            raise AuthenticationError(
                "Authentication failed: Invalid or expired token"
            ) from e
        except GitlabError as e:
            code = getattr(e, "response_code", None)
            msg = self._sanitize_error_message(e, context)
            if code == 401:
                raise AuthenticationError(msg) from e
            if code == 404:
                raise ResourceNotFoundError(msg) from e
            self.logger.error(f"GitLab request failed: {msg}")
            raise APIError(status_code=code, message=msg) from e
        except Exception as e:
            msg = self._sanitize_error_message(e, context)
            self.logger.error(f"GitLab request failed: {msg}")
            raise APIError(message=msg) from e

    def _load_repository(self) -> Any:
        identifier: int | str = (
            int(self.repo_identifier)
            if self.repo_identifier.isdigit()
            else self.repo_identifier
        )
        return self._call(
            lambda: self.client.projects.get(identifier), "Failed to load repository"
        )

    def _get_merge_request(self, pr_id: str) -> Any:
        mr_id = self._validate_mr_id(pr_id)
        cache_key = f"mr:{mr_id}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached

        mr = self._call(
            lambda: self.repo.mergerequests.get(mr_id),
            f"Failed to get MR {mr_id}",
        )
        self._set_cache(cache_key, mr)
        return mr

    def get_pr_info(self, pr_id: str) -> PullRequestInfo:
        mr = self._get_merge_request(pr_id)
        mr_data: GitLabMergeRequest = {
            "iid": mr.iid,
            "title": mr.title,
            "author": {"username": mr.author["username"]},
            "source_branch": mr.source_branch,
            "target_branch": mr.target_branch,
            "sha": mr.sha,
            "web_url": mr.web_url,
            "project_web_url": self.repo.web_url,
        }
        return self.mapper.to_pull_request_info(mr_data)

    def get_changed_files(self, pr_id: str) -> list[FileChange]:
        mr = self._get_merge_request(pr_id)
        changes = self._call(
            lambda: mr.changes(), f"Failed to get changes for MR {pr_id}"
        )

        files: list[FileChange] = []
        for change in self.paginate(
            changes.get("changes", []),
            max_items=self.MAX_FILES_PER_MR,
            label="MR changes",
        ):
            change_data: GitLabChange = {
                "old_path": change.get("old_path", ""),
                "new_path": change.get("new_path", ""),
                "new_file": change.get("new_file", False),
                "deleted_file": change.get("deleted_file", False),
                "renamed_file": change.get("renamed_file", False),
            }
            files.append(self.mapper.to_file_change(change_data))
        return files

    def get_existing_comments(self, pr_id: str) -> list[Comment]:
        mr = self._get_merge_request(pr_id)
        notes = self._call(
            lambda: self.collect(
                mr.notes.list(iterator=True),
                max_items=self.MAX_COMMENTS_PER_MR,
                label="MR notes",
            ),
            f"Failed to get comments for MR {pr_id}",
        )

        comments: list[Comment] = []
        for note in notes:
            if getattr(note, "system", False):
                continue
            try:
                note_data: GitLabNote = {
                    "id": note.id,
                    "author": {"username": note.author.get("username", "unknown")},
                    "body": note.body,
                    "created_at": note.created_at,
                    "updated_at": getattr(note, "updated_at", None),
                    "system": False,
                }
                comments.append(self.mapper.to_comment(note_data))
            except (AttributeError, KeyError, TypeError) as e:
                self.logger.warning(f"Failed to process note in MR {pr_id}: {e}")
        return comments

    def post_comment(self, pr_id: str, comment: str) -> None:
        self._validate_comment_body(comment)
        mr = self._get_merge_request(pr_id)
        self._call(
            lambda: mr.notes.create({"body": comment}),
            f"Failed to post comment to MR {pr_id}",
        )
        self.logger.info(f"Posted comment to MR {pr_id}")

    def update_comment(self, pr_id: str, comment_id: str, comment: str) -> None:
        self._validate_comment_body(comment)
        note_id = self._validate_comment_id(comment_id)
        mr = self._get_merge_request(pr_id)
        note = self._call(
            lambda: mr.notes.get(note_id), f"Failed to get comment {comment_id}"
        )
        note.body = comment
        self._call(
            lambda: note.save(), f"Failed to update comment {comment_id} in MR {pr_id}"
        )
        self.logger.info(f"Updated comment {note_id} in MR {pr_id}")
