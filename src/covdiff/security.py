from pathlib import Path
import re

from covdiff.exceptions import ConfigurationError, SecurityError


class SecurityValidator:
    FORBIDDEN_OUTPUT_DIRS = {"/etc", "/sys", "/proc", "/boot", "/dev"}
    SENSITIVE_FILE_PATTERNS = {
        ".ssh/",
        ".bashrc",
        ".bash_profile",
        ".zshrc",
        ".gitconfig",
        ".git-credentials",
        "passwd",
        "shadow",
        "sudoers",
    }
    MAX_CONFIG_SIZE = 1024 * 1024
    MAX_COVERAGE_SIZE = 256 * 1024 * 1024

    @staticmethod
    def validate_config_path(path: str) -> Path:
        if not path:
            raise ConfigurationError("Config path cannot be empty")

        resolved = Path(path).resolve()
        if not resolved.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        if resolved.is_dir():
            raise ConfigurationError("Config path must be a file, not a directory")
        if resolved.suffix not in {".yaml", ".yml"}:
            raise ConfigurationError("Config file must be .yaml or .yml")

        max_size = SecurityValidator.MAX_CONFIG_SIZE
        if resolved.stat().st_size > max_size:
            raise ConfigurationError(f"Config file too large (max {max_size} bytes)")

        return resolved

    @staticmethod
    def validate_coverage_path(path: str) -> Path:
        if not path:
            raise ConfigurationError("Coverage path cannot be empty")

        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            raise ConfigurationError(f"Coverage file not found: {path}")
        if resolved.suffix != ".json":
            raise ConfigurationError("Coverage file must be a .json summary")

        max_size = SecurityValidator.MAX_COVERAGE_SIZE
        if resolved.stat().st_size > max_size:
            raise ConfigurationError(
                f"Coverage file too large (max {max_size} bytes): {path}"
            )

        return resolved

    @staticmethod
    def validate_output_path(path: str) -> Path:
        if not path:
            raise ValueError("Output path cannot be empty")

        expanded_path = Path(path).expanduser()
        resolved = expanded_path.resolve()

        path_str = str(resolved)
        for pattern in SecurityValidator.SENSITIVE_FILE_PATTERNS:
            if pattern in path_str:
                raise SecurityError("Cannot overwrite sensitive file")

        for forbidden in SecurityValidator.FORBIDDEN_OUTPUT_DIRS:
            if path_str == forbidden or path_str.startswith(f"{forbidden}/"):
                raise SecurityError(f"Cannot write to system directory: {forbidden}")

        if expanded_path.is_symlink():
            raise SecurityError("Symlinks are not allowed for output paths")

        parent = resolved.parent
        if not parent.exists():
            try:
                parent.mkdir(parents=True, exist_ok=True, mode=0o755)
            except PermissionError as e:
                raise SecurityError(f"Cannot create output directory: {parent}") from e
        if resolved.exists() and not resolved.is_file():
            raise SecurityError("Output path must be a file, not a directory")

        return resolved

    @staticmethod
    def validate_pr_id(pr_id_str: str) -> str:
        if not pr_id_str:
            raise ValueError("PR ID cannot be empty")

        pr_id_str = pr_id_str.strip()
        try:
            pr_id = int(pr_id_str)
        except ValueError as e:
            raise ValueError(f"Invalid PR ID format: {pr_id_str}") from e
        if not 1 <= pr_id <= 2147483647:
            raise ValueError(f"PR ID out of valid range: {pr_id}")

        return pr_id_str

    @staticmethod
    def sanitize_for_logging(text: str) -> str:
        if not text:
            return text
        patterns = [
            # URLs with embedded credentials
            (r"https?://[^:\s]+:[^@\s]+@[^\s]+", "https://[REDACTED]@..."),
            (r"gh[psou]_[A-Za-z0-9]+", "gh_[REDACTED]"),
            (r"github_pat_[A-Za-z0-9_]+", "github_pat_[REDACTED]"),
            (r"gl(pat|prt|dt|cbt)-[A-Za-z0-9_\-]{20,}", r"gl\1-[REDACTED]"),
            (r"(password|token|secret|api_key|apikey)=[^\s]+", r"\1=[REDACTED]"),
            (r"(Authorization|Private-Token):\s*(Bearer\s+)?[^\s]+", r"\1: [REDACTED]"),
        ]

        for pattern, replacement in patterns:
            text = re.sub(pattern, replacement, text, flags=re.IGNORECASE)

        return text

    @staticmethod
    def sanitize_error_message(error: Exception) -> str:
        return SecurityValidator.sanitize_for_logging(str(error))
