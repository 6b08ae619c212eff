import ipaddress
import re
from typing import Any, Protocol
from urllib.parse import urlparse

from covdiff.client import GitClient, GitProvider
from covdiff.exceptions import AuthenticationError


class ClientConfig(Protocol):
    @property
    def provider(self) -> GitProvider | None: ...
    @property
    def token(self) -> str: ...
    @property
    def repo_identifier(self) -> str: ...
    @property
    def base_url(self) -> str | None: ...
    @property
    def logger(self) -> Any | None: ...
    @property
    def cache_ttl(self) -> int: ...
    @property
    def cache_maxsize(self) -> int: ...
    @property
    def max_retries(self) -> int: ...
    @property
    def backoff_factor(self) -> float: ...
    @property
    def per_page(self) -> int: ...
    @property
    def timeout(self) -> int: ...


class UnsupportedProviderError(Exception):
    def __init__(self, provider: str, supported: list[str]):
        self.provider = provider
        self.supported = supported
        super().__init__(
            f"Provider '{provider}' is not supported. "
            f"Supported providers: {', '.join(supported)}"
        )


class ClientCreationError(Exception):
    pass


class GitClientFactory:
    _REPO_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+/[a-zA-Z0-9_.-]+$")
    _GITLAB_PATH_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]+(/[a-zA-Z0-9_.-]+)+$")
    _GITLAB_ID_PATTERN = re.compile(r"^\d+$")
    # ghs_ tokens are what GitHub Actions hands out as GITHUB_TOKEN
    _GITHUB_TOKEN_PREFIXES = ("ghp_", "ghs_", "gho_", "ghu_", "github_pat_")
    _GITLAB_TOKEN_PREFIXES = ("glpat-", "glprt-", "gldt-", "glcbt-")
    _DEFAULT_CONFIG = {
        "logger": None,
        "cache_ttl": 300,
        "cache_maxsize": 500,
        "max_retries": 3,
        "backoff_factor": 1.0,
        "per_page": 100,
        "timeout": 30,
    }
    _FORBIDDEN_HOSTS = {
        "localhost",
        "0.0.0.0",  # nosec B104 - Used for SSRF prevention, not binding
        "169.254.169.254",
    }

    @staticmethod
    def _validate_token(token: str, provider: GitProvider) -> None:
        if not token:
            raise AuthenticationError("Invalid token: empty token")

        if len(token) < 20:
            raise AuthenticationError("Invalid token: too short")

        if provider == GitProvider.GITHUB:
            if not token.startswith(GitClientFactory._GITHUB_TOKEN_PREFIXES):
                raise AuthenticationError(
                    "Invalid GitHub token format. "
                    "Expected format: ghp_*, ghs_*, or github_pat_*"
                )
        elif provider == GitProvider.GITLAB:
            # CI_JOB_TOKEN values carry no prefix; only reject obvious mixups
            if token.startswith(GitClientFactory._GITHUB_TOKEN_PREFIXES):
                raise AuthenticationError(
                    "Invalid GitLab token format. "
                    "Expected format: glpat-* or a CI job token"
                )

    @staticmethod
    def _validate_repo_identifier(repo_identifier: str, provider: GitProvider) -> None:
        if not repo_identifier:
            raise ValueError("repo_identifier cannot be empty")

        dangerous_patterns = ["..", "//", "\\", "\n", "\r", ";", "&", "|", "$"]
        for pattern in dangerous_patterns:
            if pattern in repo_identifier:
                raise ValueError(
                    f"Invalid repo_identifier: contains dangerous pattern '{pattern}'"
                )

        if provider == GitProvider.GITHUB:
            if not GitClientFactory._REPO_PATTERN.match(repo_identifier):
                raise ValueError(
                    f"Invalid GitHub repo format: {repo_identifier}. "
                    f"Expected format: owner/repo"
                )
        elif provider == GitProvider.GITLAB:
            if not (
                GitClientFactory._GITLAB_ID_PATTERN.match(repo_identifier)
                or GitClientFactory._GITLAB_PATH_PATTERN.match(repo_identifier)
            ):
                raise ValueError(
                    f"Invalid GitLab project identifier: {repo_identifier}. "
                    f"Expected format: numeric ID or namespace/project"
                )

    @staticmethod
    def _validate_base_url(base_url: str | None) -> None:
        if not base_url:
            return

        parsed = urlparse(base_url)
        if parsed.scheme not in ("http", "https"):
            raise ValueError(f"Invalid URL scheme: {parsed.scheme}")
        if not parsed.netloc or not parsed.hostname:
            raise ValueError("Invalid URL: missing host")

        hostname = parsed.hostname.lower()
        if hostname in GitClientFactory._FORBIDDEN_HOSTS:
            raise ValueError(
                f"Access to host '{hostname}' is not allowed for security reasons"
            )

        try:
            address = ipaddress.ip_address(hostname)
        except ValueError:
            return
        if address.is_loopback or address.is_link_local or address.is_private:
            raise ValueError(f"Access to private address '{hostname}' not allowed")

    @staticmethod
    def _validate_numeric_params(config: ClientConfig) -> None:
        bounds: dict[str, tuple[float, float]] = {
            "cache_ttl": (0, 86400),
            "cache_maxsize": (0, 10000),
            "max_retries": (0, 10),
            "backoff_factor": (0.0, 5.0),
            "per_page": (1, 100),
            "timeout": (1, 600),
        }
        for name, (low, high) in bounds.items():
            value = getattr(config, name, GitClientFactory._DEFAULT_CONFIG[name])
            if not (low <= value <= high):
                raise ValueError(
                    f"{name} out of bounds: {value}. Must be between {low} and {high}"
                )

    @staticmethod
    def _extract_config(config: ClientConfig) -> dict[str, Any]:
        return {
            "token": config.token,
            "repo_identifier": config.repo_identifier,
            "base_url": config.base_url,
            **{
                key: getattr(config, key, default)
                for key, default in GitClientFactory._DEFAULT_CONFIG.items()
            },
        }

    @staticmethod
    def _validate_config(config: ClientConfig, provider: GitProvider) -> None:
        GitClientFactory._validate_token(config.token, provider)
        GitClientFactory._validate_repo_identifier(config.repo_identifier, provider)
        GitClientFactory._validate_base_url(config.base_url)
        GitClientFactory._validate_numeric_params(config)

    @staticmethod
    def create(config: ClientConfig) -> GitClient:
        supported = [p.value for p in GitProvider]
        if config.provider is None:
            raise UnsupportedProviderError("none", supported)

        GitClientFactory._validate_config(config, config.provider)

        params = GitClientFactory._extract_config(config)

        try:
            if config.provider == GitProvider.GITHUB:
                from covdiff.clients.github_client import GitHubClient

                return GitHubClient(**params)
            elif config.provider == GitProvider.GITLAB:
                from covdiff.clients.gitlab_client import GitLabClient

                return GitLabClient(**params)

            raise UnsupportedProviderError(str(config.provider), supported)
        except ImportError as e:
            raise ClientCreationError(
                f"Failed to import {config.provider} client: {e}. "
                f"Ensure the required dependencies are installed."
            ) from e
        except (UnsupportedProviderError, AuthenticationError, ValueError):
            raise
        except Exception as e:
            raise ClientCreationError(
                f"Failed to create {config.provider} client: {e}"
            ) from e
