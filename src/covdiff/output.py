"""Display-ready values for the coverage comment.

Everything returned here is a string, bool or None; raw floats from the
diff report never reach the template.
"""

from typing import Any

from covdiff.classify import FileSummary, classify, worst_failure_percent
from covdiff.config import ReportOptions
from covdiff.diff import DiffReport, DiffSummary
from covdiff.formatting import decimal_to_string, format_integer
from covdiff.models import REPORT_IDENTIFIER


def summary_vars(summary: DiffSummary) -> dict[str, Any]:
    return {
        kind.value: {
            "percent": decimal_to_string(coverage_diff.percent),
            "diff": decimal_to_string(coverage_diff.diff),
        }
        for kind, coverage_diff in summary.metrics()
    }


def file_vars(file_summary: FileSummary) -> dict[str, Any]:
    return {
        "filepath": file_summary.filepath,
        "is_new_file": file_summary.summary.is_new_file,
        **summary_vars(file_summary.summary),
    }


def total_vars(report: DiffReport) -> dict[str, str]:
    lines = report.total.lines
    return {
        "lines": format_integer(lines.total),
        "diff": decimal_to_string(lines.diff),
        "percent": decimal_to_string(lines.percent),
    }


def get_template_vars(
    report: DiffReport,
    options: ReportOptions,
    commit_sha: str = "",
    commit_url: str = "",
) -> dict[str, Any]:
    classification = classify(report)
    changed = [file_vars(f) for f in classification.changed]
    unchanged = [file_vars(f) for f in classification.unchanged]
    all_files = [
        file_vars(FileSummary(filepath=path, summary=summary))
        for path, summary in report.files()
    ]

    return {
        "coverage_file_failure_percent": worst_failure_percent(
            report, options.fail_delta
        ),
        "changed": changed,
        "unchanged": unchanged,
        "all": all_files,
        "total": total_vars(report),
        "has_diffs": bool(changed),
        "title": options.title,
        "custom_message": options.custom_message,
        "fail_delta": decimal_to_string(options.fail_delta),
        "commit_sha": commit_sha,
        "commit_url": commit_url,
        "pr_identifier": REPORT_IDENTIFIER,
    }
