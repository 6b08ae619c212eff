import argparse
import json
import logging
from pathlib import Path
import sys
from typing import Any

from covdiff.app import CoverageReporterApplication, ReportResult
from covdiff.exceptions import (
    ConfigurationError,
    CovdiffException,
    MalformedCoverageError,
    SecurityError,
)
from covdiff.logger import setup_logging
from covdiff.security import SecurityValidator


def _write_output(text: str, output: str | None, logger: logging.Logger) -> None:
    if output:
        output_path = SecurityValidator.validate_output_path(output)
        output_path.write_text(text)
        output_path.chmod(0o644)
        logger.info(f"Output saved to: {output_path.name}")
    else:
        print(text)


def _result_json(result: ReportResult) -> str:
    data: dict[str, Any] = {
        "prefix": result.current_alignment.full_prefix,
        "base_prefix": result.base_alignment.full_prefix,
        "changed_files": result.changed_files,
        **result.template_vars,
    }
    return json.dumps(data, indent=2, default=str)


def _read_file_list(paths: list[str]) -> list[str]:
    files: list[str] = []
    for path in paths:
        if path == "-":
            lines = sys.stdin.read().splitlines()
        else:
            lines = Path(path).read_text().splitlines()
        files.extend(line.strip() for line in lines if line.strip())
    return files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="covdiff",
        description="covdiff - coverage diff reporter for pull requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        help="Path to configuration file",
    )

    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level",
    )

    parser.add_argument(
        "--log-format",
        type=str,
        default="json",
        choices=["json", "text"],
        help="Logging format",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    report_parser = subparsers.add_parser(
        "report", help="Compare coverage for a pull request and post the comment"
    )
    report_parser.add_argument(
        "pr_id",
        type=SecurityValidator.validate_pr_id,
        help="Pull request ID (positive integer)",
    )
    report_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render the comment without posting it",
    )
    report_parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Also write the rendered comment to this file",
    )

    diff_parser = subparsers.add_parser(
        "diff", help="Compare coverage for a given list of changed files"
    )
    diff_parser.add_argument(
        "--files",
        "-f",
        nargs="+",
        required=True,
        help="Files listing changed paths, one per line ('-' for stdin)",
    )
    diff_parser.add_argument(
        "--format",
        choices=["json", "markdown"],
        default="json",
        help="Output format",
    )
    diff_parser.add_argument(
        "--output",
        "-o",
        type=str,
        help="Output file path (default: stdout)",
    )

    subparsers.add_parser("check", help="Validate configuration")

    return parser


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(args.log_level, args.log_format)
    logger = logging.getLogger(__name__)

    try:
        if args.config:
            config_path = SecurityValidator.validate_config_path(args.config)
            logger.info(f"Loading configuration from file: {config_path.name}")
            app = CoverageReporterApplication.from_file(str(config_path))
        else:
            logger.info("Loading configuration from environment variables")
            app = CoverageReporterApplication.from_env()

        if args.command == "report":
            logger.info(f"Reporting coverage for PR: {args.pr_id}")
            result, body = app.run(args.pr_id, post=not args.dry_run)
            if args.output or args.dry_run:
                _write_output(body, args.output, logger)
            if result.failed:
                sys.exit(1)

        elif args.command == "diff":
            changed_files = _read_file_list(args.files)
            result = app.diff_files(changed_files)
            if args.format == "markdown":
                output = app.render_comment(result)
            else:
                output = _result_json(result)
            _write_output(output, args.output, logger)
            if result.failed:
                sys.exit(1)

        elif args.command == "check":
            logger.info("Checking configuration...")
            logger.info(f"Provider: {app.config.provider or 'none'}")
            logger.info(f"Repository: {app.config.repo or 'none'}")
            logger.info(f"Coverage: {app.config.coverage_path}")
            logger.info(f"Base coverage: {app.config.base_coverage_path}")
            logger.info(f"Fail delta: {app.config.fail_delta}")

            if app.config.has_provider:
                client = app.client
                logger.info(f"Client created successfully: {client.__class__.__name__}")
            logger.info(f"Template: {app.renderer.template_name}")
            print("Configuration is valid!")

        else:
            parser.print_help()
            sys.exit(1)

    except ConfigurationError as e:
        sanitized_error = SecurityValidator.sanitize_error_message(e)
        logger.error(f"Configuration error: {sanitized_error}")
        sys.exit(1)
    except SecurityError as e:
        logger.error(f"Security error: {e}")
        sys.exit(1)
    except MalformedCoverageError as e:
        logger.error(f"Malformed coverage input: {e}")
        sys.exit(1)
    except CovdiffException as e:
        sanitized_error = SecurityValidator.sanitize_error_message(e)
        logger.error(f"Application error: {sanitized_error}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)
    except Exception as e:
        sanitized_error = SecurityValidator.sanitize_error_message(e)
        logger.error(f"Unexpected error: {sanitized_error}")
        sys.exit(1)


if __name__ == "__main__":
    main()
