"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from logging import getLogger
from typing import TYPE_CHECKING, Any

from transitgraph.adapters.notifications import HttpStopConflationDispatcher, SmtpChangesetMailer
from transitgraph.adapters.payloads import decode_payload
from transitgraph.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyTransitUnitOfWork,
    is_started,
    startup,
)
from transitgraph.config.imports import ImportConfig, get_import_config
from transitgraph.config.notifications import NotificationConfig, get_notification_config
from transitgraph.domain.changesets import (
    ApplyOutcome,
    ChangesetApplier,
    ChangesetEmitter,
    ChangesetError,
    ChangesetNotFoundError,
    PostCommitTask,
    TrialResult,
    email_recipient,
    run_post_commit_tasks,
)
from transitgraph.domain.feed import FeedGraph
from transitgraph.domain.model import Changeset, IssueCategory, User
from transitgraph.domain.ports import TransitUnitOfWork
from transitgraph.domain.resolution import EntityResolver

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from transitgraph.domain.feed import OperatorInFeed
    from transitgraph.domain.model import Issue
    from transitgraph.domain.ports import (
        ChangesetMailer,
        FeedSource,
        StopConflationDispatcher,
    )

UnitOfWorkFactory = Callable[[], TransitUnitOfWork]


log = getLogger(__name__)


class UserNotFoundError(LookupError):
    """Raised when a changeset names a user that does not exist."""


@dataclass(slots=True)
class ImportFeedResult:
    changeset_id: int | None
    payloads: int = 0
    changes: int = 0
    outcome: ApplyOutcome | None = None
    failed_tasks: list[str] = field(default_factory=list[str])


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _unit_of_work_factory(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyTransitUnitOfWork


def _default_mailer(notifications: NotificationConfig) -> ChangesetMailer | None:
    if not notifications.send_changeset_emails_to_users:
        return None
    return SmtpChangesetMailer(config=notifications)


def _default_conflation(notifications: NotificationConfig) -> StopConflationDispatcher | None:
    if not notifications.auto_conflate_stops_with_osm or not notifications.conflation_url:
        return None
    return HttpStopConflationDispatcher(url=notifications.conflation_url)


def import_feed(  # noqa: PLR0913
    source: FeedSource,
    *,
    feed_onestop_id: str,
    operators_in_feed: Sequence[OperatorInFeed],
    apply: bool = False,
    notes: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
    notifications: NotificationConfig | None = None,
    mailer: ChangesetMailer | None = None,
    conflation: StopConflationDispatcher | None = None,
) -> ImportFeedResult:
    """Load a feed, resolve it against the registry and store an import changeset."""

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    effective_config = config or get_import_config()
    log.info(
        "Starting import of feed %s: operators=%s, apply=%s",
        feed_onestop_id,
        len(operators_in_feed),
        apply,
    )

    graph = FeedGraph(source).load()
    now = _utcnow()
    with effective_uow() as uow:
        repositories = uow.repositories
        resolved = EntityResolver(
            graph,
            feed_onestop_id=feed_onestop_id,
            operators_in_feed=operators_in_feed,
            stops=repositories.stops,
            routes=repositories.routes,
            operators=repositories.operators,
            config=effective_config,
        ).resolve()

        changeset = Changeset(
            notes=notes or f"Import of feed {feed_onestop_id}",
            imported_from_feed_onestop_id=feed_onestop_id,
            created_at=now,
        )
        result = ImportFeedResult(changeset_id=None)
        for chunk in ChangesetEmitter(graph, resolved, config=effective_config).emit():
            changeset.add_payload(chunk, created_at=now)
            result.payloads += 1
            result.changes += len(chunk)
        repositories.changesets.add(changeset)
        uow.commit()
        result.changeset_id = changeset.id

    log.info(
        "Stored import changeset %s: payloads=%s, changes=%s",
        result.changeset_id,
        result.payloads,
        result.changes,
    )

    if apply and result.changeset_id is not None:
        result.outcome = apply_changeset(
            result.changeset_id,
            unit_of_work_factory=effective_uow,
            config=effective_config,
            notifications=notifications,
            mailer=mailer,
            conflation=conflation,
        )
    return result


def create_changeset(  # noqa: PLR0913
    payload: Mapping[str, Any] | list[Any] | str | bytes,
    *,
    user_id: UUID | None = None,
    notes: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    notifications: NotificationConfig | None = None,
    mailer: ChangesetMailer | None = None,
) -> int:
    """Validate ``payload`` and store it as a pending changeset.

    Raises ``PayloadValidationError`` for malformed payloads and
    ``UserNotFoundError`` for unknown users.
    """

    changes = decode_payload(payload)
    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    effective_notifications = notifications or get_notification_config()
    effective_mailer = mailer or _default_mailer(effective_notifications)

    with effective_uow() as uow:
        user: User | None = None
        if user_id is not None:
            user = uow.repositories.users.get(user_id)
            if user is None:
                raise UserNotFoundError(f"User {user_id} does not exist")
        now = _utcnow()
        changeset = Changeset(notes=notes, user=user, created_at=now)
        changeset.add_payload(changes, created_at=now)
        uow.repositories.changesets.add(changeset)
        uow.commit()
        changeset_id = changeset.id

    if changeset_id is None:
        raise RuntimeError("Changeset was not assigned an id")
    log.info("Created changeset %s with %s change(s)", changeset_id, len(changes))

    recipient = email_recipient(changeset, effective_notifications)
    if effective_mailer is not None and recipient is not None:
        run_post_commit_tasks(
            [
                PostCommitTask(
                    "changeset creation email",
                    partial(effective_mailer.send_creation, changeset_id, recipient),
                )
            ]
        )
    return changeset_id


def apply_changeset(  # noqa: PLR0913
    changeset_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
    notifications: NotificationConfig | None = None,
    mailer: ChangesetMailer | None = None,
    conflation: StopConflationDispatcher | None = None,
) -> ApplyOutcome:
    """Apply a stored changeset in one transaction, then run its post-commit tasks.

    A failed attempt is rolled back and the changeset is marked failed in a
    fresh transaction before the error propagates.
    """

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    effective_notifications = notifications or get_notification_config()

    with effective_uow() as uow:
        changeset = uow.repositories.changesets.get(changeset_id)
        if changeset is None:
            raise ChangesetNotFoundError(changeset_id)
        applier = ChangesetApplier(
            uow,
            config=config or get_import_config(),
            notifications=effective_notifications,
            mailer=mailer or _default_mailer(effective_notifications),
            conflation=conflation or _default_conflation(effective_notifications),
        )
        try:
            outcome = applier.apply(changeset)
            uow.commit()
        except ChangesetError as exc:
            uow.rollback()
            log.warning("Changeset %s failed: %s", changeset_id, exc)
            _mark_failed(effective_uow, changeset_id)
            raise

    failed = run_post_commit_tasks(outcome.after_commit)
    if failed:
        log.warning(
            "Changeset %s applied but post-commit tasks failed: %s",
            changeset_id,
            ", ".join(failed),
        )
    return outcome


def _mark_failed(unit_of_work_factory: UnitOfWorkFactory, changeset_id: int) -> None:
    with unit_of_work_factory() as uow:
        changeset = uow.repositories.changesets.get(changeset_id)
        if changeset is None:
            return
        changeset.mark_failed()
        uow.commit()


def trial_changeset(
    changeset_id: int,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    config: ImportConfig | None = None,
) -> TrialResult:
    """Run a changeset without committing and report whether it would apply."""

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    with effective_uow() as uow:
        changeset = uow.repositories.changesets.get(changeset_id)
        if changeset is None:
            raise ChangesetNotFoundError(changeset_id)
        result = ChangesetApplier(uow, config=config or get_import_config()).trial(changeset)
    log.info("Trial of changeset %s: succeeded=%s", changeset_id, result.succeeded)
    return result


def create_user(
    *,
    email: str,
    name: str | None = None,
    admin: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> User:
    """Create and persist a user who can author changesets."""

    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    user = User(email=email, name=name, admin=admin, created_at=_utcnow())
    with effective_uow() as uow:
        uow.repositories.users.add(user)
        uow.commit()
    log.info("Created user %s", user.id)
    return user


def list_issues(
    *,
    open_only: bool = True,
    category: IssueCategory | str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[Issue]:
    effective_uow = _unit_of_work_factory(unit_of_work_factory)
    wanted = IssueCategory(category) if category is not None else None
    with effective_uow() as uow:
        return list(uow.repositories.issues.list_issues(open_only=open_only, category=wanted))
