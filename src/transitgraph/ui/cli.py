from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from transitgraph.adapters.payloads import PayloadValidationError
from transitgraph.app import (
    UserNotFoundError,
    apply_changeset,
    create_changeset,
    create_user,
    list_issues,
    trial_changeset,
)
from transitgraph.config import configure_logging
from transitgraph.domain.changesets import ChangesetError
from transitgraph.domain.model import IssueCategory

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Manage the transit registry")
    subparsers = parser.add_subparsers(dest="command", required=True)

    changeset = subparsers.add_parser("changeset", help="Changeset commands")
    changeset_sub = changeset.add_subparsers(dest="changeset_command", required=True)
    changeset_create = changeset_sub.add_parser("create", help="Store a changeset payload")
    changeset_create.add_argument(
        "--payload",
        type=Path,
        required=True,
        help="Path to a JSON change payload ('-' reads stdin)",
    )
    changeset_create.add_argument(
        "--user-id",
        type=str,
        help="Existing user id authoring the changeset",
    )
    changeset_create.add_argument(
        "--notes",
        type=str,
        help="Free-text notes stored on the changeset",
    )
    changeset_apply = changeset_sub.add_parser("apply", help="Apply a stored changeset")
    changeset_apply.add_argument("changeset_id", type=int, help="Changeset id")
    changeset_trial = changeset_sub.add_parser(
        "trial", help="Check whether a stored changeset would apply"
    )
    changeset_trial.add_argument("changeset_id", type=int, help="Changeset id")

    user = subparsers.add_parser("user", help="User management commands")
    user_sub = user.add_subparsers(dest="user_command", required=True)
    user_create = user_sub.add_parser("create", help="Create a user")
    user_create.add_argument(
        "--email",
        type=str,
        required=True,
        help="E-mail address used for changeset notifications",
    )
    user_create.add_argument(
        "--name",
        type=str,
        help="Optional display name",
    )
    user_create.add_argument(
        "--admin",
        action="store_true",
        help="Admins are never sent notification e-mails",
    )

    issues = subparsers.add_parser("issues", help="List data-quality issues")
    issues.add_argument(
        "--category",
        type=str,
        choices=[category.value for category in IssueCategory],
        help="Only list issues of this category",
    )
    issues.add_argument(
        "--all",
        action="store_true",
        help="Include closed issues",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _read_payload(path: Path) -> str:
    if str(path) == "-":
        return sys.stdin.read()
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read payload file {path}: {exc}") from exc


def _run_changeset_command(args: argparse.Namespace) -> int:
    match args.changeset_command:
        case "create":
            changeset_id = create_changeset(
                _read_payload(args.payload),
                user_id=_parse_uuid(args.user_id) if args.user_id else None,
                notes=args.notes,
            )
            log.info("Created changeset %s", changeset_id)
        case "apply":
            outcome = apply_changeset(args.changeset_id)
            log.info(
                "Applied changeset %s: created=%s updated=%s destroyed=%s issues=%s",
                outcome.changeset_id,
                outcome.created,
                outcome.updated,
                outcome.destroyed,
                len(outcome.created_issues),
            )
        case "trial":
            result = trial_changeset(args.changeset_id)
            if not result.succeeded:
                for error in result.errors:
                    log.error("Trial failed: %s", json.dumps(error, default=str))
                return 1
            log.info("Changeset %s would apply cleanly", args.changeset_id)
        case _:
            raise ValueError(f"Unsupported changeset command: {args.changeset_command}")
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        exit_code = 0
        if parsed_args.command == "changeset":
            exit_code = _run_changeset_command(parsed_args)
        elif parsed_args.command == "user" and parsed_args.user_command == "create":
            user = create_user(
                email=parsed_args.email,
                name=parsed_args.name,
                admin=parsed_args.admin,
            )
            log.info("Created user %s", user.id)
        elif parsed_args.command == "issues":
            for issue in list_issues(open_only=not parsed_args.all, category=parsed_args.category):
                log.info("Issue %s", json.dumps(issue.as_log_dict(), default=str))
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except (PayloadValidationError, UserNotFoundError, ValueError) as exc:
        log.error("CLI validation error: %s", exc)  # noqa: TRY400
        for error in getattr(exc, "errors", []):
            log.error("  %s", json.dumps(error, default=str))  # noqa: TRY400
        sys.exit(2)
    except ChangesetError as exc:
        log.error("Changeset error: %s", json.dumps(exc.as_dict(), default=str))  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
