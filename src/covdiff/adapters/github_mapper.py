from github.File import File
from github.IssueComment import IssueComment
from github.PullRequest import PullRequest

from covdiff.models import Comment, FileChange, FileStatus, PullRequestInfo


class GitHubMapper:
    STATUS_MAP = {
        "added": FileStatus.ADDED,
        "removed": FileStatus.DELETED,
        "modified": FileStatus.MODIFIED,
        "renamed": FileStatus.RENAMED,
        "copied": FileStatus.ADDED,
        "changed": FileStatus.MODIFIED,
    }

    @staticmethod
    def to_pull_request_info(pr: PullRequest) -> PullRequestInfo:
        try:
            return PullRequestInfo(
                id=str(pr.number),
                title=pr.title,
                author_username=pr.user.login,
                source_branch=pr.head.ref,
                target_branch=pr.base.ref,
                head_sha=pr.head.sha,
                web_url=pr.html_url,
                commit_url_base=f"{pr.base.repo.html_url}/commits",
            )
        except AttributeError as e:
            raise ValueError(f"Invalid GitHub PR data: {e}") from e

    @staticmethod
    def to_file_change(file: File) -> FileChange:
        try:
            return FileChange(
                path=file.filename,
                old_path=getattr(file, "previous_filename", None),
                status=GitHubMapper.STATUS_MAP.get(file.status, FileStatus.MODIFIED),
            )
        except AttributeError as e:
            raise ValueError(f"Invalid GitHub file data: {e}") from e

    @staticmethod
    def to_comment(comment: IssueComment) -> Comment:
        try:
            return Comment(
                id=str(comment.id),
                author_username=comment.user.login,
                body=comment.body or "",
                created_at=comment.created_at.isoformat(),
                updated_at=comment.updated_at.isoformat()
                if comment.updated_at
                else None,
            )
        except AttributeError as e:
            raise ValueError(f"Invalid GitHub issue comment data: {e}") from e
