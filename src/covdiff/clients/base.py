from abc import ABC
from typing import Any, Generic, TypeVar

from cachetools import TTLCache

from covdiff.client import GitClient
from covdiff.logger import get_logger


T = TypeVar("T")


class BaseGitClient(GitClient, Generic[T], ABC):
    MAX_COMMENT_LENGTH = 65536

    def __init__(
        self,
        client: T,
        repo_identifier: str,
        logger: Any | None = None,
        cache_ttl: int = 300,
        cache_maxsize: int = 500,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
    ) -> None:
        self.client = client
        self.repo_identifier = repo_identifier
        self.logger = logger or get_logger(self.__class__.__name__)
        self.cache_ttl = cache_ttl
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self._repo: Any = None
        self._cache: TTLCache[str, Any] = TTLCache(
            maxsize=max(cache_maxsize, 1), ttl=max(cache_ttl, 1)
        )

    @property
    def repo(self) -> Any:
        if self._repo is None:
            self._repo = self._load_repository()
        return self._repo

    def _load_repository(self) -> Any:
        raise NotImplementedError

    def _validate_comment_body(self, comment: str) -> None:
        if not comment or not comment.strip():
            raise ValueError("Comment cannot be empty")
        if len(comment) > self.MAX_COMMENT_LENGTH:
            raise ValueError("Comment is too long")

    def _get_from_cache(self, key: str) -> Any | None:
        if self.cache_ttl <= 0:
            return None
        return self._cache.get(key)

    def _set_cache(self, key: str, value: Any) -> None:
        if self.cache_ttl > 0:
            self._cache[key] = value

    def _clear_cache(self, pattern: str | None = None) -> None:
        if pattern is None:
            self._cache.clear()
        else:
            keys_to_delete = [k for k in self._cache if pattern in k]
            for key in keys_to_delete:
                del self._cache[key]
