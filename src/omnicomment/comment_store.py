from __future__ import annotations

from abc import ABC, abstractmethod

from omnicomment.models import CommentRef, IssueComment


class CommentNotFoundError(LookupError):
    def __init__(self, comment_id: int) -> None:
        super().__init__(f"Comment {comment_id} does not exist")
        self.comment_id = comment_id


class CommentStore(ABC):
    @abstractmethod
    def list_issue_comments(self, issue_number: int) -> list[IssueComment]:
        """Return every comment on the issue in listing order."""

    @abstractmethod
    def create_issue_comment(self, issue_number: int, body: str) -> CommentRef:
        """Post a new comment on the issue."""

    @abstractmethod
    def get_issue_comment(self, comment_id: int) -> IssueComment:
        """Fetch the current state of one comment.

        Raises CommentNotFoundError when the comment has been deleted.
        """

    @abstractmethod
    def update_issue_comment(self, comment_id: int, body: str) -> CommentRef:
        """Replace the body of an existing comment."""
