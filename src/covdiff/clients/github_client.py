from collections.abc import Callable
import re
import time
from typing import Any, TypeVar

from github import Auth, Github, GithubException, RateLimitExceededException
from github.PullRequest import PullRequest
import requests

from covdiff.adapters.github_mapper import GitHubMapper
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


class GitHubClient(RetryMixin, PaginationMixin, BaseGitClient[Github]):
    MAX_FILES_PER_PR = 3000
    MAX_COMMENTS_PER_PR = 1000

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
        auth = Auth.Token(token)
        client = Github(
            auth=auth,
            base_url=base_url or "https://api.github.com",
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
        self.mapper = GitHubMapper()

    @staticmethod
    def _validate_repo_identifier(identifier: str) -> None:
        """Validate repository identifier format."""
        pattern = r"^[a-zA-Z0-9\-_.]+/[a-zA-Z0-9\-_.]+$"
        if not re.match(pattern, identifier):
            raise ValueError("Invalid repository identifier format")

    def _validate_pr_id(self, pr_id: str) -> int:
        """Validate and convert PR ID to prevent injection."""
        try:
            pr_int = int(pr_id)
            if pr_int <= 0 or pr_int > 2147483647:
                raise ValueError("Invalid PR ID range")
            return pr_int
        except (ValueError, TypeError) as e:
            raise ResourceNotFoundError("Invalid PR identifier") from e

    def _validate_comment_id(self, comment_id: str) -> int:
        """Validate and convert comment ID."""
        try:
            comment_int = int(comment_id)
            if comment_int <= 0:
                raise ValueError("Invalid comment ID")
            return comment_int
        except (ValueError, TypeError) as e:
            raise ResourceNotFoundError("Invalid comment identifier") from e

    def _sanitize_error_message(self, error: Exception, context: str) -> str:
        """Sanitize error messages to prevent information leakage."""
        status = getattr(error, "status", None)
        error_str = str(error).lower()

        if status == 401 or "unauthorized" in error_str:
            return f"Authentication failed during {context}"
        elif status == 404 or "not found" in error_str:
            return f"Resource not found during {context}"
        elif status == 403 or "forbidden" in error_str:
            return f"Access forbidden during {context}"
        elif "rate limit" in error_str:
            return f"Rate limit exceeded during {context}"
        else:
            return f"Operation failed during {context}"

    @staticmethod
    def _as_transient(func: Callable[[], R]) -> Callable[[], R]:
        """Re-raise transport failures as retryable covdiff errors."""

        def call() -> R:
            try:
                return func()
            except RateLimitExceededException as e:
                # header carries the reset moment as a unix timestamp
                reset = (e.headers or {}).get("x-ratelimit-reset")
                wait = None
                if reset and reset.isdigit():
                    wait = max(int(reset) - int(time.time()), 1)
                raise RateLimitError(wait, "GitHub rate limit exceeded") from e
            except GithubException as e:
                if e.status in (502, 503, 504):
                    raise NetworkError(
                        f"GitHub service temporarily unavailable: {e.status}"
                    ) from e
                raise
            except requests.exceptions.Timeout as e:
                raise TimeoutError("GitHub request timed out") from e
            except requests.exceptions.ConnectionError as e:
                raise NetworkError("Could not connect to GitHub") from e

        return call

    def _call(self, func: Callable[[], R], context: str) -> R:
        wrapped = self.with_retry(self._as_transient(func))
        try:
            return wrapped()  # type: ignore[no-any-return]
        except CovdiffException:
            raise
        except GithubException as e:
            msg = self._sanitize_error_message(e, context)
            if e.status == 401:
                raise AuthenticationError(msg) from e
            if e.status == 404:
                raise ResourceNotFoundError(msg) from e
            self.logger.error(f"GitHub request failed: {msg}")
            raise APIError(status_code=e.status, message=msg) from e
        except Exception as e:
            msg = self._sanitize_error_message(e, context)
            self.logger.error(f"GitHub request failed: {msg}")
            raise APIError(message=msg) from e

    def _load_repository(self) -> Any:
        return self._call(
            lambda: self.client.get_repo(self.repo_identifier), "repository loading"
        )

    def _get_pull(self, pr_id: str) -> PullRequest:
        pr_int = self._validate_pr_id(pr_id)
        cache_key = f"pull:{pr_int}"
        cached = self._get_from_cache(cache_key)
        if cached is not None:
            return cached  # type: ignore[no-any-return]

        pr: PullRequest = self._call(
            lambda: self.repo.get_pull(pr_int), "pull request lookup"
        )
        self._set_cache(cache_key, pr)
        return pr

    def get_pr_info(self, pr_id: str) -> PullRequestInfo:
        pr = self._get_pull(pr_id)
        return self.mapper.to_pull_request_info(pr)

    def get_changed_files(self, pr_id: str) -> list[FileChange]:
        pr = self._get_pull(pr_id)
        files = self._call(
            lambda: self.collect(
                pr.get_files(), max_items=self.MAX_FILES_PER_PR, label="PR files"
            ),
            "changed file retrieval",
        )
        return [self.mapper.to_file_change(f) for f in files]

    def get_existing_comments(self, pr_id: str) -> list[Comment]:
        pr = self._get_pull(pr_id)
        issue_comments = self._call(
            lambda: self.collect(
                pr.get_issue_comments(),
                max_items=self.MAX_COMMENTS_PER_PR,
                label="PR comments",
            ),
            "comment retrieval",
        )
        return [self.mapper.to_comment(c) for c in issue_comments]

    def post_comment(self, pr_id: str, comment: str) -> None:
        self._validate_comment_body(comment)
        pr = self._get_pull(pr_id)
        self._call(lambda: pr.create_issue_comment(comment), "comment posting")
        self.logger.info(f"Posted comment to PR {pr_id}")

    def update_comment(self, pr_id: str, comment_id: str, comment: str) -> None:
        self._validate_comment_body(comment)
        comment_int = self._validate_comment_id(comment_id)
        pr = self._get_pull(pr_id)
        issue_comment = self._call(
            lambda: pr.get_issue_comment(comment_int), "comment lookup"
        )
        self._call(lambda: issue_comment.edit(comment), "comment update")
        self.logger.info(f"Updated comment {comment_id} on PR {pr_id}")
