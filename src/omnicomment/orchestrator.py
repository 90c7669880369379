from __future__ import annotations

from collections.abc import Callable
import logging
import time

from omnicomment.comment_store import CommentNotFoundError, CommentStore
from omnicomment.config import SectionConfig, UpsertOptions, load_section_config
from omnicomment.document import (
    blank_document,
    get_section_content,
    is_managed,
    render_section,
    replace_section,
)
from omnicomment.github_gateway import GitHubGateway
from omnicomment.locking import (
    DEFAULT_LOCK_ATTEMPTS,
    DEFAULT_LOCK_DELAY_SECONDS,
    ReactionStore,
    resource_lock,
)
from omnicomment.models import IssueComment, UpsertResult
from omnicomment.observability import log_event


LOGGER = logging.getLogger("omnicomment.orchestrator")


class ValidationError(ValueError):
    pass


def find_managed_comment(comments: CommentStore, issue_number: int) -> IssueComment | None:
    for comment in comments.list_issue_comments(issue_number):
        if is_managed(comment.body):
            return comment
    return None


class SectionCommentOrchestrator:
    def __init__(
        self,
        comments: CommentStore,
        reactions: ReactionStore,
        *,
        lock_attempts: int = DEFAULT_LOCK_ATTEMPTS,
        lock_delay_seconds: float = DEFAULT_LOCK_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._comments = comments
        self._reactions = reactions
        self._lock_attempts = lock_attempts
        self._lock_delay_seconds = lock_delay_seconds
        self._sleep = sleep

    def upsert(
        self,
        *,
        issue_number: int,
        section: str,
        content: str,
        section_config: SectionConfig,
        title: str | None = None,
        collapsed: bool = False,
    ) -> UpsertResult:
        """Write one section of the issue's managed comment, creating it if needed.

        Nothing is locked when there is nothing to do: no comment and no content
        is a noop, and a section that already renders identically is unchanged.
        Every write happens under an issue-level reaction lock against a freshly
        fetched body.
        """
        existing = find_managed_comment(self._comments, issue_number)
        log_event(
            LOGGER,
            "section_comment_lookup",
            issue_number=issue_number,
            section=section,
            found=existing is not None,
        )
        if existing is None and not content:
            log_event(LOGGER, "section_noop", issue_number=issue_number, section=section)
            return UpsertResult(comment_id=None, html_url=None, status="noop")

        rendered = render_section(content, title, collapsed)
        if existing is not None and get_section_content(existing.body, section) == rendered:
            log_event(
                LOGGER,
                "section_unchanged",
                issue_number=issue_number,
                section=section,
                comment_id=existing.comment_id,
            )
            return UpsertResult(
                comment_id=existing.comment_id,
                html_url=existing.html_url,
                status="unchanged",
            )

        with resource_lock(
            self._reactions,
            "issue",
            issue_number,
            max_attempts=self._lock_attempts,
            delay_seconds=self._lock_delay_seconds,
            sleep=self._sleep,
        ):
            current = self._refetch(issue_number, existing)
            if current is not None:
                ref = self._comments.update_issue_comment(
                    current.comment_id,
                    replace_section(current.body, section, rendered),
                )
                log_event(
                    LOGGER,
                    "section_comment_updated",
                    issue_number=issue_number,
                    section=section,
                    comment_id=ref.comment_id,
                )
                return UpsertResult(
                    comment_id=ref.comment_id, html_url=ref.html_url, status="updated"
                )

            body = replace_section(blank_document(section_config), section, rendered)
            ref = self._comments.create_issue_comment(issue_number, body)
            log_event(
                LOGGER,
                "section_comment_created",
                issue_number=issue_number,
                section=section,
                comment_id=ref.comment_id,
            )
            return UpsertResult(comment_id=ref.comment_id, html_url=ref.html_url, status="created")

    def _refetch(self, issue_number: int, existing: IssueComment | None) -> IssueComment | None:
        # Another writer may have created or edited the comment while we waited.
        if existing is None:
            return find_managed_comment(self._comments, issue_number)
        try:
            return self._comments.get_issue_comment(existing.comment_id)
        except CommentNotFoundError:
            log_event(
                LOGGER,
                "section_comment_vanished",
                issue_number=issue_number,
                comment_id=existing.comment_id,
            )
            return find_managed_comment(self._comments, issue_number)


def omni_comment(
    options: UpsertOptions,
    *,
    gateway: GitHubGateway | None = None,
) -> UpsertResult:
    issue_number = _validate_options(options)
    section_config = load_section_config(options.config_path)
    if gateway is None:
        owner, name = parse_repo(options.repo)
        gateway = GitHubGateway(owner, name, token=options.token)
    orchestrator = SectionCommentOrchestrator(gateway, gateway)
    return orchestrator.upsert(
        issue_number=issue_number,
        section=options.section,
        content=options.message,
        section_config=section_config,
        title=options.title,
        collapsed=options.collapsed,
    )


def parse_repo(repo: str) -> tuple[str, str]:
    owner, sep, name = repo.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ValidationError(f"Repo must look like owner/name, got {repo!r}")
    return owner, name


def _validate_options(options: UpsertOptions) -> int:
    issue_number = options.issue_number
    if not issue_number:
        raise ValidationError("Issue number is required")
    if issue_number < 1:
        raise ValidationError("Issue number must be >= 1")
    if not options.repo.strip():
        raise ValidationError("Repo is required")
    if not options.section.strip():
        raise ValidationError("Section is required")
    if not options.token.strip():
        raise ValidationError("Token is required")
    parse_repo(options.repo)
    return issue_number
