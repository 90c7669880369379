from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from omnicomment.comment_store import CommentNotFoundError, CommentStore
from omnicomment.locking import ReactionStore
from omnicomment.models import CommentRef, IssueComment, Reaction, ResourceKind


@dataclass
class _StoredComment:
    comment_id: int
    issue_number: int
    body: str


class InMemoryGitHub(CommentStore, ReactionStore):
    """Process-local stand-in for the GitHub comment and reaction endpoints.

    ``contended_attempts`` makes the next N ``create_reaction`` calls report a
    reaction held by another job that releases it afterwards. A lock that is
    never released is modelled with ``seed_reaction``.
    """

    def __init__(
        self,
        *,
        html_url_base: str = "https://github.test/o/r/issues",
        contended_attempts: int = 0,
    ) -> None:
        self._html_url_base = html_url_base
        self._comments: dict[int, _StoredComment] = {}
        self._reactions: dict[tuple[ResourceKind, int, str], int] = {}
        self._next_id = 1000
        self.contended_attempts = contended_attempts
        self.calls: list[tuple[str, object]] = []
        self.before_create_reaction: Callable[[ResourceKind, int], None] | None = None

    def seed_comment(self, issue_number: int, body: str) -> int:
        comment_id = self._allocate_id()
        self._comments[comment_id] = _StoredComment(
            comment_id=comment_id, issue_number=issue_number, body=body
        )
        return comment_id

    def remove_comment(self, comment_id: int) -> None:
        del self._comments[comment_id]

    def seed_reaction(self, kind: ResourceKind, resource_id: int, content: str) -> int:
        reaction_id = self._allocate_id()
        self._reactions[(kind, resource_id, content)] = reaction_id
        return reaction_id

    def has_reaction(self, kind: ResourceKind, resource_id: int, content: str) -> bool:
        return (kind, resource_id, content) in self._reactions

    def body_of(self, comment_id: int) -> str:
        return self._comments[comment_id].body

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def list_issue_comments(self, issue_number: int) -> list[IssueComment]:
        self.calls.append(("list_issue_comments", issue_number))
        return [
            self._to_issue_comment(stored)
            for stored in self._comments.values()
            if stored.issue_number == issue_number
        ]

    def create_issue_comment(self, issue_number: int, body: str) -> CommentRef:
        self.calls.append(("create_issue_comment", (issue_number, body)))
        comment_id = self.seed_comment(issue_number, body)
        return CommentRef(comment_id=comment_id, html_url=self._html_url(comment_id))

    def get_issue_comment(self, comment_id: int) -> IssueComment:
        self.calls.append(("get_issue_comment", comment_id))
        stored = self._comments.get(comment_id)
        if stored is None:
            raise CommentNotFoundError(comment_id)
        return self._to_issue_comment(stored)

    def update_issue_comment(self, comment_id: int, body: str) -> CommentRef:
        self.calls.append(("update_issue_comment", (comment_id, body)))
        stored = self._comments.get(comment_id)
        if stored is None:
            raise CommentNotFoundError(comment_id)
        stored.body = body
        return CommentRef(comment_id=comment_id, html_url=self._html_url(comment_id))

    def create_reaction(self, kind: ResourceKind, resource_id: int, content: str) -> Reaction:
        self.calls.append(("create_reaction", (kind, resource_id, content)))
        if self.before_create_reaction is not None:
            self.before_create_reaction(kind, resource_id)
        key = (kind, resource_id, content)
        if self.contended_attempts > 0:
            self.contended_attempts -= 1
            return Reaction(reaction_id=self._allocate_id(), created=False)
        existing = self._reactions.get(key)
        if existing is not None:
            return Reaction(reaction_id=existing, created=False)
        reaction_id = self._allocate_id()
        self._reactions[key] = reaction_id
        return Reaction(reaction_id=reaction_id, created=True)

    def delete_reaction(self, kind: ResourceKind, resource_id: int, reaction_id: int) -> None:
        self.calls.append(("delete_reaction", (kind, resource_id, reaction_id)))
        for key, stored_id in list(self._reactions.items()):
            if key[0] == kind and key[1] == resource_id and stored_id == reaction_id:
                del self._reactions[key]

    def _allocate_id(self) -> int:
        self._next_id += 1
        return self._next_id

    def _html_url(self, comment_id: int) -> str:
        return f"{self._html_url_base}#issuecomment-{comment_id}"

    def _to_issue_comment(self, stored: _StoredComment) -> IssueComment:
        return IssueComment(
            comment_id=stored.comment_id,
            body=stored.body,
            html_url=self._html_url(stored.comment_id),
        )
