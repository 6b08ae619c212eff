from dataclasses import dataclass
import math
import os
from pathlib import Path
import re
from typing import Any

import yaml

from covdiff.client import GitProvider
from covdiff.exceptions import ConfigurationError


DEFAULT_COVERAGE_PATH = "coverage/coverage-summary.json"
DEFAULT_TITLE = "Coverage Report"
DEFAULT_FAIL_DELTA = 0.2

_ENV_REFERENCE = re.compile(r"\$\{[^}]+\}|\$[A-Za-z_][A-Za-z0-9_]*(?![A-Za-z0-9_])")


@dataclass(frozen=True)
class ReportOptions:
    title: str = DEFAULT_TITLE
    custom_message: str = ""
    fail_delta: float = DEFAULT_FAIL_DELTA
    strip_path_prefix: str = ""


@dataclass(frozen=True)
class CovdiffConfig:
    base_coverage_path: str
    coverage_path: str = DEFAULT_COVERAGE_PATH
    provider: GitProvider | None = None
    token: str = ""
    repo: str = ""
    base_url: str | None = None
    title: str = DEFAULT_TITLE
    custom_message: str = ""
    fail_delta: float = DEFAULT_FAIL_DELTA
    strip_path_prefix: str = ""
    template_path: str | None = None
    cache_ttl: int = 300
    max_retries: int = 3
    backoff_factor: float = 1.0
    timeout: int = 30
    log_level: str = "INFO"
    log_format: str = "json"

    @staticmethod
    def _safe_parse_int(value: str, name: str, default: int) -> int:
        if not value:
            return default
        try:
            return int(value)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid integer value for {name}: '{value}'. Must be a valid integer."
            ) from e

    @staticmethod
    def _safe_parse_float(value: str, name: str, default: float) -> float:
        if not value:
            return default
        try:
            return float(value)
        except (ValueError, TypeError) as e:
            raise ConfigurationError(
                f"Invalid float value for {name}: '{value}'. Must be a valid number."
            ) from e

    @staticmethod
    def _parse_provider(value: str | None) -> GitProvider | None:
        if not value:
            return None
        try:
            return GitProvider(value.lower())
        except ValueError as e:
            raise ConfigurationError(f"Invalid provider: {value}") from e

    def __post_init__(self) -> None:
        if not self.coverage_path:
            raise ConfigurationError("Coverage path is required")
        if not self.base_coverage_path:
            raise ConfigurationError("Base coverage path is required")
        if not math.isfinite(self.fail_delta) or not 0 <= self.fail_delta <= 100:
            raise ConfigurationError("fail_delta must be a number between 0 and 100")
        if self.cache_ttl < 0:
            raise ConfigurationError("cache_ttl must be non-negative")
        if self.max_retries < 0:
            raise ConfigurationError("max_retries must be non-negative")
        if self.backoff_factor < 0:
            raise ConfigurationError("backoff_factor must be non-negative")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        if self.provider is not None:
            if not self.token:
                raise ConfigurationError("Token is required")
            if not self.repo:
                raise ConfigurationError("Repository is required")

    @property
    def has_provider(self) -> bool:
        return self.provider is not None

    def report_options(self) -> ReportOptions:
        return ReportOptions(
            title=self.title,
            custom_message=self.custom_message,
            fail_delta=self.fail_delta,
            strip_path_prefix=self.strip_path_prefix,
        )

    @classmethod
    def from_env(cls) -> "CovdiffConfig":
        provider = cls._parse_provider(os.environ.get("COVDIFF_PROVIDER"))

        token = ""
        base_url = None
        repo = os.environ.get("COVDIFF_REPO", "")
        if provider is not None:
            token_env = f"{provider.value.upper()}_TOKEN"
            token = os.environ.get(token_env, "")
            if not token:
                raise ConfigurationError(f"{token_env} environment variable not set")
            if not repo:
                raise ConfigurationError("COVDIFF_REPO environment variable not set")
            if provider == GitProvider.GITHUB:
                base_url = os.environ.get("GITHUB_BASE_URL")
            elif provider == GitProvider.GITLAB:
                base_url = os.environ.get("GITLAB_URL")

        base_coverage_path = os.environ.get("COVDIFF_BASE_COVERAGE_PATH")
        if not base_coverage_path:
            raise ConfigurationError(
                "COVDIFF_BASE_COVERAGE_PATH environment variable not set"
            )

        return cls(
            provider=provider,
            token=token,
            repo=repo,
            base_url=base_url,
            coverage_path=os.environ.get(
                "COVDIFF_COVERAGE_PATH", DEFAULT_COVERAGE_PATH
            ),
            base_coverage_path=base_coverage_path,
            title=os.environ.get("COVDIFF_TITLE", DEFAULT_TITLE),
            custom_message=os.environ.get("COVDIFF_CUSTOM_MESSAGE", ""),
            fail_delta=cls._safe_parse_float(
                os.environ.get("COVDIFF_FAIL_DELTA", ""),
                "COVDIFF_FAIL_DELTA",
                DEFAULT_FAIL_DELTA,
            ),
            strip_path_prefix=os.environ.get("COVDIFF_STRIP_PATH_PREFIX", ""),
            template_path=os.environ.get("COVDIFF_TEMPLATE_PATH") or None,
            cache_ttl=cls._safe_parse_int(
                os.environ.get("COVDIFF_CACHE_TTL", ""), "COVDIFF_CACHE_TTL", 300
            ),
            max_retries=cls._safe_parse_int(
                os.environ.get("COVDIFF_MAX_RETRIES", ""), "COVDIFF_MAX_RETRIES", 3
            ),
            backoff_factor=cls._safe_parse_float(
                os.environ.get("COVDIFF_BACKOFF_FACTOR", ""),
                "COVDIFF_BACKOFF_FACTOR",
                1.0,
            ),
            timeout=cls._safe_parse_int(
                os.environ.get("COVDIFF_TIMEOUT", ""), "COVDIFF_TIMEOUT", 30
            ),
            log_level=os.environ.get("COVDIFF_LOG_LEVEL", "INFO"),
            log_format=os.environ.get("COVDIFF_LOG_FORMAT", "json"),
        )

    @staticmethod
    def _expand_token(token: str) -> str:
        if not _ENV_REFERENCE.search(token):
            return token
        expanded_token = os.path.expandvars(token)
        if _ENV_REFERENCE.search(expanded_token):
            # Don't reveal the token value in error message
            raise ConfigurationError(
                "Token configuration error: Environment variable not found"
            )
        return expanded_token

    @classmethod
    def from_file(cls, path: str | Path) -> "CovdiffConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file not found: {path}")

        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e

        if not data:
            raise ConfigurationError("Configuration file is empty")
        if not isinstance(data, dict):
            raise ConfigurationError("Configuration file must contain a mapping")

        provider = cls._parse_provider(data.get("provider"))

        token = ""
        repo = data.get("repository", "")
        if provider is not None:
            auth = data.get("authentication", {})
            token = auth.get("token")
            if not token:
                raise ConfigurationError("authentication.token not specified")
            token = cls._expand_token(token)
            if not repo:
                raise ConfigurationError("repository not specified")

        coverage: dict[str, Any] = data.get("coverage", {})
        if not coverage.get("base_path"):
            raise ConfigurationError("coverage.base_path not specified")

        report = data.get("report", {})
        cache = data.get("cache", {})
        retry = data.get("retry", {})
        logging = data.get("logging", {})
        performance = data.get("performance", {})

        try:
            fail_delta = float(report.get("fail_delta", DEFAULT_FAIL_DELTA))
        except (TypeError, ValueError) as e:
            raise ConfigurationError("report.fail_delta must be a number") from e

        return cls(
            provider=provider,
            token=token,
            repo=str(repo),
            base_url=data.get("base_url"),
            coverage_path=coverage.get("path", DEFAULT_COVERAGE_PATH),
            base_coverage_path=coverage["base_path"],
            strip_path_prefix=coverage.get("strip_path_prefix", ""),
            title=report.get("title", DEFAULT_TITLE),
            custom_message=report.get("custom_message", ""),
            fail_delta=fail_delta,
            template_path=report.get("template"),
            cache_ttl=cache.get("ttl", 300),
            max_retries=retry.get("max_attempts", 3),
            backoff_factor=retry.get("backoff_factor", 1.0),
            timeout=performance.get("timeout", 30),
            log_level=logging.get("level", "INFO"),
            log_format=logging.get("format", "json"),
        )
