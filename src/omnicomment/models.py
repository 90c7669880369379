from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


ResourceKind = Literal["issue", "comment"]
UpsertStatus = Literal["created", "updated", "unchanged", "noop"]


@dataclass(frozen=True)
class IssueComment:
    comment_id: int
    body: str
    html_url: str


@dataclass(frozen=True)
class CommentRef:
    comment_id: int
    html_url: str


@dataclass(frozen=True)
class Reaction:
    reaction_id: int
    created: bool


@dataclass(frozen=True)
class UpsertResult:
    comment_id: int | None
    html_url: str | None
    status: UpsertStatus
