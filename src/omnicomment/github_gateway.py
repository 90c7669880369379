from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
from typing import cast
from urllib.parse import urlencode

from omnicomment.comment_store import CommentNotFoundError, CommentStore
from omnicomment.locking import ReactionStore
from omnicomment.models import CommentRef, IssueComment, Reaction, ResourceKind
from omnicomment.observability import log_event
from omnicomment.shell import CommandError, run


LOGGER = logging.getLogger("omnicomment.github_gateway")
_PAGE_SIZE = 100


class GitHubApiError(RuntimeError):
    def __init__(self, method: str, path: str, status_code: int, message: str) -> None:
        super().__init__(
            f"GitHub API {method} {path} failed with status {status_code}: {message}"
        )
        self.method = method
        self.path = path
        self.status_code = status_code


class GitHubResponseError(RuntimeError):
    pass


@dataclass(frozen=True)
class _ApiResponse:
    status_code: int
    payload: object


@dataclass(frozen=True)
class GitHubGateway(CommentStore, ReactionStore):
    owner: str
    name: str
    token: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def list_issue_comments(self, issue_number: int) -> list[IssueComment]:
        comments: list[IssueComment] = []
        page = 1
        while True:
            query = urlencode({"per_page": _PAGE_SIZE, "page": page})
            path = f"/repos/{self.owner}/{self.name}/issues/{issue_number}/comments?{query}"
            payload = self._api_json("GET", path)
            if not isinstance(payload, list):
                raise GitHubResponseError(
                    "Unexpected GitHub response: expected list of issue comments"
                )

            for item in payload:
                item_obj = _as_object_dict(item)
                if item_obj is None:
                    continue
                comments.append(_parse_issue_comment(item_obj))
            if len(payload) < _PAGE_SIZE:
                break
            page += 1
        log_event(
            LOGGER,
            "github_read",
            endpoint="issue_comments",
            issue_number=issue_number,
            count=len(comments),
        )
        return comments

    def get_issue_comment(self, comment_id: int) -> IssueComment:
        path = f"/repos/{self.owner}/{self.name}/issues/comments/{comment_id}"
        try:
            payload = self._api_json("GET", path)
        except GitHubApiError as exc:
            if exc.status_code == 404:
                raise CommentNotFoundError(comment_id) from exc
            raise
        payload_obj = _as_object_dict(payload)
        if payload_obj is None:
            raise GitHubResponseError(
                "Unexpected GitHub response: expected object for issue comment"
            )
        comment = _parse_issue_comment(payload_obj)
        log_event(LOGGER, "github_read", endpoint="issue_comment", comment_id=comment_id)
        return comment

    def create_issue_comment(self, issue_number: int, body: str) -> CommentRef:
        path = f"/repos/{self.owner}/{self.name}/issues/{issue_number}/comments"
        try:
            ref = _parse_comment_ref(self._api_json("POST", path, payload={"body": body}))
        except Exception as exc:  # noqa: BLE001
            log_event(
                LOGGER,
                "github_comment_create_failed",
                repo_full_name=self.full_name,
                issue_number=issue_number,
                error_type=type(exc).__name__,
            )
            raise
        log_event(
            LOGGER,
            "github_comment_created",
            repo_full_name=self.full_name,
            issue_number=issue_number,
            comment_id=ref.comment_id,
        )
        return ref

    def update_issue_comment(self, comment_id: int, body: str) -> CommentRef:
        path = f"/repos/{self.owner}/{self.name}/issues/comments/{comment_id}"
        try:
            ref = _parse_comment_ref(self._api_json("PATCH", path, payload={"body": body}))
        except Exception as exc:  # noqa: BLE001
            log_event(
                LOGGER,
                "github_comment_update_failed",
                repo_full_name=self.full_name,
                comment_id=comment_id,
                error_type=type(exc).__name__,
            )
            raise
        log_event(
            LOGGER,
            "github_comment_updated",
            repo_full_name=self.full_name,
            comment_id=comment_id,
        )
        return ref

    def create_reaction(self, kind: ResourceKind, resource_id: int, content: str) -> Reaction:
        path = self._reactions_path(kind, resource_id)
        response = self._api_request("POST", path, payload={"content": content})
        payload_obj = _as_object_dict(response.payload)
        if payload_obj is None:
            raise GitHubResponseError("Unexpected GitHub response: expected object for reaction")
        # 201 when the reaction was added, 200 when this user already had it.
        reaction = Reaction(
            reaction_id=_as_int(payload_obj.get("id"), field="id"),
            created=response.status_code == 201,
        )
        log_event(
            LOGGER,
            "github_reaction_created",
            kind=kind,
            resource_id=resource_id,
            reaction_id=reaction.reaction_id,
            created=reaction.created,
        )
        return reaction

    def delete_reaction(self, kind: ResourceKind, resource_id: int, reaction_id: int) -> None:
        path = f"{self._reactions_path(kind, resource_id)}/{reaction_id}"
        try:
            self._api_request("DELETE", path)
        except Exception as exc:  # noqa: BLE001
            log_event(
                LOGGER,
                "github_reaction_delete_failed",
                kind=kind,
                resource_id=resource_id,
                reaction_id=reaction_id,
                error_type=type(exc).__name__,
            )
            raise
        log_event(
            LOGGER,
            "github_reaction_deleted",
            kind=kind,
            resource_id=resource_id,
            reaction_id=reaction_id,
        )

    def _reactions_path(self, kind: ResourceKind, resource_id: int) -> str:
        if kind == "issue":
            return f"/repos/{self.owner}/{self.name}/issues/{resource_id}/reactions"
        if kind == "comment":
            return f"/repos/{self.owner}/{self.name}/issues/comments/{resource_id}/reactions"
        raise ValueError(f"Unsupported reaction resource kind: {kind!r}")

    def _api_json(self, method: str, path: str, payload: dict[str, object] | None = None) -> object:
        return self._api_request(method, path, payload=payload).payload

    def _api_request(
        self, method: str, path: str, payload: dict[str, object] | None = None
    ) -> _ApiResponse:
        method_upper = method.upper()
        cmd = ["gh", "api", "--method", method_upper, "--include", path]
        stdin_payload: str | None = None
        if payload is not None:
            cmd.extend(["--input", "-"])
            stdin_payload = json.dumps(payload)

        try:
            raw = run(cmd, input_text=stdin_payload, env=self._command_env())
        except CommandError as exc:
            # gh exits non-zero on HTTP errors but still prints the included response.
            if not _has_status_line(exc.stdout):
                log_event(
                    LOGGER,
                    "github_request_unsent",
                    method=method_upper,
                    path=path,
                    exit_code=exc.returncode,
                    stderr=_preview_for_log(exc.stderr),
                )
                raise
            raw = exc.stdout
        try:
            status_code, body = _parse_http_response(raw)
        except GitHubResponseError:
            log_event(
                LOGGER,
                "github_request_unparseable",
                method=method_upper,
                path=path,
                raw_preview=_preview_for_log(raw),
            )
            raise
        if status_code < 200 or status_code >= 300:
            message = _error_message(body)
            log_event(
                LOGGER,
                "github_request_failed",
                method=method_upper,
                path=path,
                status_code=status_code,
                error=message,
            )
            raise GitHubApiError(method_upper, path, status_code, message)
        if not body.strip():
            return _ApiResponse(status_code=status_code, payload=None)
        try:
            payload_obj = json.loads(body)
        except json.JSONDecodeError as exc:
            raise GitHubResponseError(
                f"Unexpected GitHub response: invalid JSON for {method_upper} {path}"
            ) from exc
        return _ApiResponse(status_code=status_code, payload=payload_obj)

    def _command_env(self) -> dict[str, str] | None:
        if not self.token:
            return None
        env = dict(os.environ)
        env["GH_TOKEN"] = self.token
        return env


def _parse_issue_comment(item_obj: dict[str, object]) -> IssueComment:
    return IssueComment(
        comment_id=_as_int(item_obj.get("id"), field="id"),
        body=_as_string(item_obj.get("body")),
        html_url=_as_string(item_obj.get("html_url")),
    )


def _parse_comment_ref(payload: object) -> CommentRef:
    payload_obj = _as_object_dict(payload)
    if payload_obj is None:
        raise GitHubResponseError("Unexpected GitHub response: expected object for issue comment")
    return CommentRef(
        comment_id=_as_int(payload_obj.get("id"), field="id"),
        html_url=_as_string(payload_obj.get("html_url")),
    )


def _has_status_line(raw: str) -> bool:
    return any(line.startswith("HTTP/") for line in raw.replace("\r\n", "\n").split("\n"))


def _parse_http_response(raw: str) -> tuple[int, str]:
    normalized = raw.replace("\r\n", "\n")
    lines = normalized.split("\n")

    # Redirects and 100-continue produce several status blocks; the last one wins.
    status_line_index = -1
    for index, line in enumerate(lines):
        if line.startswith("HTTP/"):
            status_line_index = index

    if status_line_index < 0:
        raise GitHubResponseError("Unexpected GitHub response: missing HTTP status line")

    status_line = lines[status_line_index]
    status_parts = status_line.split(" ", 2)
    if len(status_parts) < 2:
        raise GitHubResponseError(f"Unexpected GitHub response status line: {status_line!r}")

    try:
        status_code = int(status_parts[1])
    except ValueError as exc:
        raise GitHubResponseError(
            f"Unexpected GitHub response status line: {status_line!r}"
        ) from exc

    # Headers end at the first blank line; everything after it is the body.
    try:
        body_start = lines.index("", status_line_index + 1) + 1
    except ValueError:
        body_start = len(lines)
    return status_code, "\n".join(lines[body_start:])


def _error_message(body: str) -> str:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return body.strip() or "<empty>"
    payload_obj = _as_object_dict(payload)
    if payload_obj is not None and isinstance(payload_obj.get("message"), str):
        return cast(str, payload_obj["message"])
    return body.strip() or "<empty>"


def _preview_for_log(text: str, *, limit: int = 240) -> str:
    compact = text.replace("\n", "\\n").strip()
    if not compact:
        return "<empty>"
    if len(compact) <= limit:
        return compact
    return f"{compact[:limit]}..."


def _as_object_dict(value: object) -> dict[str, object] | None:
    if not isinstance(value, dict):
        return None
    if not all(isinstance(key, str) for key in value.keys()):
        return None
    return cast(dict[str, object], value)


def _as_string(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def _as_int(value: object, *, field: str) -> int:
    if isinstance(value, bool):
        raise GitHubResponseError(f"Unexpected GitHub response type for {field}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError as exc:
            raise GitHubResponseError(
                f"Unexpected GitHub response value for {field}: {value}"
            ) from exc
    raise GitHubResponseError(f"Unexpected GitHub response type for {field}")
