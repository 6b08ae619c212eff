import pytest

from covdiff.adapters.gitlab_mapper import (
    GitLabChange,
    GitLabMapper,
    GitLabMergeRequest,
    GitLabNote,
)
from covdiff.models import FileStatus


def _change(**overrides) -> GitLabChange:
    change: GitLabChange = {
        "old_path": "src/app.ts",
        "new_path": "src/app.ts",
        "new_file": False,
        "deleted_file": False,
        "renamed_file": False,
    }
    change.update(overrides)  # type: ignore[typeddict-item]
    return change


def test_to_pull_request_info():
    mr: GitLabMergeRequest = {
        "iid": 42,
        "title": "Add coverage gate",
        "author": {"username": "dev"},
        "source_branch": "feature",
        "target_branch": "main",
        "sha": "cafebabe1234",
        "web_url": "https://gitlab.com/group/project/-/merge_requests/42",
        "project_web_url": "https://gitlab.com/group/project",
    }

    result = GitLabMapper.to_pull_request_info(mr)

    assert result.id == "42"
    assert result.title == "Add coverage gate"
    assert result.author_username == "dev"
    assert result.source_branch == "feature"
    assert result.target_branch == "main"
    assert result.head_sha == "cafebabe1234"
    assert result.commit_url == (
        "https://gitlab.com/group/project/-/commit/cafebabe1234"
    )


def test_to_pull_request_info_missing_field():
    with pytest.raises(ValueError, match="Invalid GitLab merge request data"):
        GitLabMapper.to_pull_request_info({"iid": 1})  # type: ignore[typeddict-item]


@pytest.mark.parametrize(
    ("flags", "expected"),
    [
        ({}, FileStatus.MODIFIED),
        ({"new_file": True}, FileStatus.ADDED),
        ({"deleted_file": True}, FileStatus.DELETED),
        ({"renamed_file": True}, FileStatus.RENAMED),
        ({"new_file": None, "deleted_file": None}, FileStatus.MODIFIED),
    ],
)
def test_to_file_change_status(flags, expected):
    result = GitLabMapper.to_file_change(_change(**flags))

    assert result.path == "src/app.ts"
    assert result.status == expected
    assert result.old_path is None


def test_to_file_change_renamed_keeps_old_path():
    change = _change(new_path="src/main.ts", renamed_file=True)

    result = GitLabMapper.to_file_change(change)

    assert result.path == "src/main.ts"
    assert result.old_path == "src/app.ts"


def test_to_file_change_missing_path():
    with pytest.raises(ValueError, match="Invalid GitLab file change data"):
        GitLabMapper.to_file_change({"old_path": "a"})  # type: ignore[typeddict-item]


def test_to_comment():
    note: GitLabNote = {
        "id": 77,
        "author": {"username": "coverage-bot"},
        "body": "<!-- test-coverage-reporter-output -->\n## Coverage Report",
        "created_at": "2024-01-01T12:00:00Z",
        "updated_at": "2024-01-01T13:00:00Z",
        "system": False,
    }

    result = GitLabMapper.to_comment(note)

    assert result.id == "77"
    assert result.author_username == "coverage-bot"
    assert result.created_at == "2024-01-01T12:00:00Z"
    assert result.updated_at == "2024-01-01T13:00:00Z"
    assert result.is_report_comment is True


def test_to_comment_with_empty_body():
    note: GitLabNote = {
        "id": 1,
        "author": {"username": "dev"},
        "body": None,  # type: ignore[typeddict-item]
        "created_at": "2024-01-01T12:00:00Z",
        "updated_at": None,
        "system": False,
    }

    result = GitLabMapper.to_comment(note)

    assert result.body == ""
    assert result.updated_at is None


def test_to_comment_missing_author():
    with pytest.raises(ValueError, match="Invalid GitLab note data"):
        GitLabMapper.to_comment({"id": 1, "body": "x"})  # type: ignore[typeddict-item]
