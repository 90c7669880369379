from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
import sys

from omnicomment.config import DEFAULT_CONFIG_PATH, ConfigError, UpsertOptions
from omnicomment.document import DocumentError
from omnicomment.github_gateway import GitHubApiError, GitHubResponseError
from omnicomment.locking import LockNotAcquiredError
from omnicomment.models import UpsertResult
from omnicomment.observability import configure_logging
from omnicomment.orchestrator import ValidationError, omni_comment
from omnicomment.shell import CommandError


_HANDLED_ERRORS = (
    ValidationError,
    ConfigError,
    DocumentError,
    LockNotAcquiredError,
    GitHubApiError,
    GitHubResponseError,
    CommandError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="omni-comment",
        description="Write one section of a shared, sectioned issue comment",
    )
    parser.add_argument("--issue-number", type=int, required=True)
    parser.add_argument(
        "--repo",
        type=str,
        default=os.environ.get("GITHUB_REPOSITORY", ""),
        help="owner/name of the repository (default: $GITHUB_REPOSITORY)",
    )
    parser.add_argument("--section", type=str, required=True)
    message_group = parser.add_mutually_exclusive_group()
    message_group.add_argument("--message", type=str, default=None)
    message_group.add_argument(
        "--message-file",
        type=Path,
        default=None,
        help="Read the section content from a file",
    )
    parser.add_argument("--title", type=str, default=None)
    parser.add_argument(
        "--collapsed",
        action="store_true",
        help="Render the titled section closed",
    )
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH)
    parser.add_argument(
        "--token",
        type=str,
        default=os.environ.get("GITHUB_TOKEN", ""),
        help="GitHub token (default: $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        nargs="?",
        const="high",
        default=None,
        choices=("low", "high"),
        help="Enable runtime logging to stderr",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        options = UpsertOptions(
            issue_number=args.issue_number,
            repo=str(args.repo),
            section=str(args.section),
            token=str(args.token),
            message=_read_message(args),
            title=args.title,
            collapsed=bool(args.collapsed),
            config_path=args.config,
        )
        result = omni_comment(options)
    except _HANDLED_ERRORS as exc:
        print(f"omni-comment: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(_result_payload(result)))
    return 0


def _read_message(args: argparse.Namespace) -> str:
    if args.message_file is not None:
        path = Path(args.message_file)
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"Cannot read message file {path}: {exc}") from exc
    if args.message is not None:
        return str(args.message)
    return ""


def _result_payload(result: UpsertResult) -> dict[str, object]:
    return {
        "id": result.comment_id,
        "html_url": result.html_url,
        "status": result.status,
    }
