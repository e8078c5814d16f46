"""Side effects that must only run once a changeset transaction has committed."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from transitgraph.config.notifications import NotificationConfig
    from transitgraph.domain.model import Changeset

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PostCommitTask:
    name: str
    run: Callable[[], None]


def run_post_commit_tasks(tasks: Iterable[PostCommitTask]) -> list[str]:
    """Run tasks in order; failures are logged and never propagate.

    Returns the names of the tasks that failed.
    """

    failed: list[str] = []
    for task in tasks:
        try:
            task.run()
        except Exception:
            log.exception("Post-commit task %s failed", task.name)
            failed.append(task.name)
        else:
            log.debug("Post-commit task %s done", task.name)
    return failed


def email_recipient(changeset: Changeset, config: NotificationConfig) -> str | None:
    """Address to notify about ``changeset``, if anyone.

    Admins and users without an e-mail address are never notified.
    """

    user = changeset.user
    if not config.send_changeset_emails_to_users or user is None:
        return None
    if user.admin or not user.email:
        return None
    return user.email
