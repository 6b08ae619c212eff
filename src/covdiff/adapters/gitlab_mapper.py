from typing import TypedDict

from covdiff.models import Comment, FileChange, FileStatus, PullRequestInfo


class GitLabUser(TypedDict):
    username: str


class GitLabMergeRequest(TypedDict):
    iid: int
    title: str
    author: GitLabUser
    source_branch: str
    target_branch: str
    sha: str
    web_url: str
    project_web_url: str


class GitLabChange(TypedDict):
    old_path: str
    new_path: str
    new_file: bool | None
    deleted_file: bool | None
    renamed_file: bool | None


class GitLabNote(TypedDict):
    id: int
    author: GitLabUser
    body: str
    created_at: str
    updated_at: str | None
    system: bool


class GitLabMapper:
    @staticmethod
    def to_pull_request_info(mr: GitLabMergeRequest) -> PullRequestInfo:
        try:
            return PullRequestInfo(
                id=str(mr["iid"]),
                title=mr["title"],
                author_username=mr["author"]["username"],
                source_branch=mr["source_branch"],
                target_branch=mr["target_branch"],
                head_sha=mr["sha"],
                web_url=mr["web_url"],
                commit_url_base=f"{mr['project_web_url']}/-/commit",
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid GitLab merge request data: {e}") from e

    @staticmethod
    def to_file_change(change: GitLabChange) -> FileChange:
        try:
            if change.get("new_file"):
                status = FileStatus.ADDED
            elif change.get("deleted_file"):
                status = FileStatus.DELETED
            elif change.get("renamed_file"):
                status = FileStatus.RENAMED
            else:
                status = FileStatus.MODIFIED

            return FileChange(
                path=change["new_path"],
                old_path=change["old_path"]
                if change["old_path"] != change["new_path"]
                else None,
                status=status,
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid GitLab file change data: {e}") from e

    @staticmethod
    def to_comment(note: GitLabNote) -> Comment:
        try:
            return Comment(
                id=str(note["id"]),
                author_username=note["author"]["username"],
                body=note["body"] or "",
                created_at=note["created_at"],
                updated_at=note.get("updated_at"),
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"Invalid GitLab note data: {e}") from e
