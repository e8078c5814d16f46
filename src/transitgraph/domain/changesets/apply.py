"""Transactional application of changesets.

The applier works inside the caller's unit of work and never commits. The
caller commits on success and then runs ``ApplyOutcome.after_commit``; any
``ChangesetError`` leaves the transaction to be rolled back.

Application runs in stages:

1. entries, in stored order: create/update/destroy per entity,
2. relationships (``serves``, ``servedBy``, ``operatedBy``), after all entries,
3. referential validation of everything touched or destroyed,
4. derived attributes (stop distances, route and operator geometry),
5. issue deprecation and the ``issuesResolved`` truthfulness check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from functools import partial
from typing import TYPE_CHECKING, Any

from transitgraph.config.imports import ImportConfig
from transitgraph.config.notifications import NotificationConfig
from transitgraph.domain import geometry
from transitgraph.domain.changesets.computed import (
    ComputedAttributes,
    ComputedAttributeUpdater,
    PendingRecomputation,
)
from transitgraph.domain.changesets.errors import (
    ChangesetAlreadyAppliedError,
    ChangesetError,
    EntityNotFoundError,
    InvalidChangeError,
    ReferentialIntegrityError,
    StillReferencedError,
    UntruthfulResolutionError,
)
from transitgraph.domain.changesets.hooks import PostCommitTask, email_recipient
from transitgraph.domain.issues import IssueTracker
from transitgraph.domain.model import (
    CLASS_BY_ENTITY_TYPE,
    CanonicalChange,
    CanonicalEntity,
    EntityType,
    HistoryAction,
    OldEntity,
    OldServesLink,
    OperatorChange,
    Route,
    RouteChange,
    RouteStopPattern,
    RouteStopPatternChange,
    ScheduleStopPair,
    ScheduleStopPairChange,
    ServesLink,
    Stop,
    StopChange,
)
from transitgraph.domain.onestop_id import entity_type_of, route_of_stop_pattern

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from transitgraph.domain.model import Changeset, Entity, EntityChange, Issue
    from transitgraph.domain.ports import (
        CanonicalEntityRepository,
        ChangesetMailer,
        StopConflationDispatcher,
        TransitRepositories,
        TransitUnitOfWork,
    )

log = logging.getLogger(__name__)

type EntityKey = tuple[EntityType, str]
type PairKey = tuple[str | None, str, str, str | None]


@dataclass(slots=True)
class ApplyOutcome:
    changeset_id: int | None
    created: int = 0
    updated: int = 0
    destroyed: int = 0
    computed: ComputedAttributes = field(default_factory=ComputedAttributes)
    deprecated_issues: list[Issue] = field(default_factory=list["Issue"])
    created_issues: list[Issue] = field(default_factory=list["Issue"])
    touched_stop_ids: list[UUID] = field(default_factory=list["UUID"])
    after_commit: list[PostCommitTask] = field(default_factory=list[PostCommitTask])


@dataclass(frozen=True, slots=True)
class TrialResult:
    succeeded: bool
    errors: tuple[dict[str, object], ...] = ()


class ChangesetApplier:
    """Apply changesets through a transit unit of work."""

    def __init__(  # noqa: PLR0913
        self,
        unit_of_work: TransitUnitOfWork,
        *,
        config: ImportConfig | None = None,
        notifications: NotificationConfig | None = None,
        mailer: ChangesetMailer | None = None,
        conflation: StopConflationDispatcher | None = None,
        clock: Callable[[], datetime] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._uow = unit_of_work
        self._config = config or ImportConfig()
        self._notifications = notifications or NotificationConfig()
        self._mailer = mailer
        self._conflation = conflation
        self._clock = clock or (lambda: datetime.now(UTC))
        self._log = logger or log

    def apply(self, changeset: Changeset) -> ApplyOutcome:
        """Apply ``changeset`` and queue its post-commit tasks.

        Raises a ``ChangesetError`` subclass on any failure; the caller must
        roll back.
        """

        if changeset.applied:
            raise ChangesetAlreadyAppliedError(changeset.id)
        changeset.begin_applying()
        self._log.info("Applying changeset %s", changeset.id)
        outcome = self._run(changeset).execute()
        changeset.mark_applied(self._clock())
        self._uow.flush()
        outcome.after_commit = self._post_commit_tasks(changeset, outcome)
        self._log.info(
            "Applied changeset %s: created=%s updated=%s destroyed=%s",
            changeset.id,
            outcome.created,
            outcome.updated,
            outcome.destroyed,
        )
        return outcome

    def trial(self, changeset: Changeset) -> TrialResult:
        """Run every stage without committing and report the errors, if any."""

        try:
            if changeset.applied:
                raise ChangesetAlreadyAppliedError(changeset.id)
            self._run(changeset).execute()
            self._uow.flush()
        except ChangesetError as exc:
            self._log.info("Trial of changeset %s failed: %s", changeset.id, exc)
            return TrialResult(succeeded=False, errors=(exc.as_dict(),))
        finally:
            self._uow.rollback()
        return TrialResult(succeeded=True)

    def _run(self, changeset: Changeset) -> _ApplyRun:
        return _ApplyRun(
            self._uow, changeset, config=self._config, now=self._clock(), logger=self._log
        )

    def _post_commit_tasks(
        self, changeset: Changeset, outcome: ApplyOutcome
    ) -> list[PostCommitTask]:
        tasks: list[PostCommitTask] = []
        recipient = email_recipient(changeset, self._notifications)
        if self._mailer is not None and recipient is not None and changeset.id is not None:
            tasks.append(
                PostCommitTask(
                    "changeset application email",
                    partial(self._mailer.send_application, changeset.id, recipient),
                )
            )
        if (
            self._conflation is not None
            and self._notifications.auto_conflate_stops_with_osm
            and outcome.touched_stop_ids
        ):
            tasks.append(
                PostCommitTask(
                    "stop conflation",
                    partial(self._conflation.dispatch, tuple(outcome.touched_stop_ids)),
                )
            )
        return tasks


class _ApplyRun:
    """State of one application attempt."""

    def __init__(
        self,
        unit_of_work: TransitUnitOfWork,
        changeset: Changeset,
        *,
        config: ImportConfig,
        now: datetime,
        logger: logging.Logger,
    ) -> None:
        self._uow = unit_of_work
        self._repositories: TransitRepositories = unit_of_work.repositories
        self._log = logger
        self._config = config
        self._changeset = changeset
        self._changeset_id = changeset.id
        self._from_import = changeset.is_import
        self._now = now

        declared = {
            issue_id for change in changeset.changes() for issue_id in change.issues_resolved
        }
        self._declared = sorted(declared)
        self._issues = IssueTracker(
            self._repositories.issues,
            changeset.id,
            resolved=declared,
            clock=lambda: self._now,
            logger=self._log,
        )

        self._entities: dict[EntityKey, CanonicalEntity] = {}
        self._pairs: dict[PairKey, ScheduleStopPair] = {}
        self._created: set[int] = set()
        self._touched_entities: dict[int, Entity] = {}
        self._destroyed: dict[EntityKey, CanonicalEntity] = {}
        self._relationships: list[tuple[CanonicalEntity, CanonicalChange]] = []
        self._links_added: set[tuple[EntityType, str, EntityType, str]] = set()
        self._touched: set[tuple[EntityType, str, str]] = set()
        self._pending = PendingRecomputation()
        self._touched_stops: dict[UUID, None] = {}
        self._outcome = ApplyOutcome(changeset_id=changeset.id)

    def execute(self) -> ApplyOutcome:
        for change in self._changeset.changes():
            self._dispatch(change)
        self._uow.flush()

        for entity, change in self._relationships:
            try:
                self._apply_relationships(entity, change)
            except ValueError as exc:
                raise self._invalid(change, exc) from exc
        self._uow.flush()

        self._validate()

        updater = ComputedAttributeUpdater(
            self._repositories,
            self._issues,
            self._touch,
            gap_threshold_m=self._config.stop_distance_gap_threshold_m,
            logger=self._log,
        )
        computed = updater.update(self._pending)
        self._uow.flush()

        self._deprecate_issues(self._touched | computed.touched)
        self._uow.flush()

        outcome = self._outcome
        outcome.computed = computed
        outcome.created_issues = list(self._issues.created)
        outcome.deprecated_issues = list(self._issues.deprecated)
        outcome.touched_stop_ids = list(self._touched_stops)
        return outcome

    # Lookup -------------------------------------------------------------------

    def _repository(self, entity_type: EntityType) -> CanonicalEntityRepository[Any]:
        repositories = self._repositories
        match entity_type:
            case EntityType.OPERATOR:
                return repositories.operators
            case EntityType.ROUTE:
                return repositories.routes
            case EntityType.STOP:
                return repositories.stops
            case EntityType.ROUTE_STOP_PATTERN:
                return repositories.route_stop_patterns
            case _:
                raise InvalidChangeError(
                    f"{entity_type} has no onestop id", changeset_id=self._changeset_id
                )

    def _find(self, entity_type: EntityType, onestop_id: str) -> CanonicalEntity | None:
        key = (entity_type, onestop_id)
        if key in self._destroyed:
            return None
        entity = self._entities.get(key)
        if entity is None:
            entity = self._repository(entity_type).get_by_onestop_id(onestop_id)
            if entity is not None:
                self._entities[key] = entity
        return entity

    def _exists(self, entity_type: EntityType, onestop_id: str) -> bool:
        return self._find(entity_type, onestop_id) is not None

    def _find_pair(self, key: PairKey) -> ScheduleStopPair | None:
        pair = self._pairs.get(key)
        if pair is None:
            pair = self._repositories.schedule_stop_pairs.get_by_key(*key)
            if pair is not None:
                self._pairs[key] = pair
        return pair

    # Touch bookkeeping ----------------------------------------------------------

    def _touch(self, entity: Entity, attribute: str) -> None:
        """Register a change of ``attribute`` before it is written."""

        first = id(entity) not in self._touched_entities
        self._touched_entities[id(entity)] = entity
        if isinstance(entity, CanonicalEntity):
            self._touched.add((entity.entity_type, entity.onestop_id, attribute))
            if first and id(entity) not in self._created:
                self._repositories.history.add_entity(
                    OldEntity.capture(
                        entity,
                        action=HistoryAction.UPDATE,
                        changeset_id=self._changeset_id,
                        recorded_at=self._now,
                    )
                )
                entity.bump_version()
                self._outcome.updated += 1
            entity.created_or_updated_in_changeset_id = self._changeset_id
        elif isinstance(entity, ScheduleStopPair):
            entity.created_or_updated_in_changeset_id = self._changeset_id
        _stamp_updated(entity, self._now)

    # Entries ------------------------------------------------------------------

    def _dispatch(self, change: EntityChange) -> None:
        try:
            match change:
                case ScheduleStopPairChange() if change.is_destroy:
                    self._destroy_pair(change)
                case ScheduleStopPairChange():
                    self._create_update_pair(change)
                case CanonicalChange() if change.is_destroy:
                    self._destroy(change)
                case CanonicalChange():
                    self._create_update(change)
        except ValueError as exc:
            raise self._invalid(change, exc) from exc

    def _invalid(self, change: EntityChange, exc: ValueError) -> InvalidChangeError:
        return InvalidChangeError(
            str(exc),
            changeset_id=self._changeset_id,
            entity_type=change.entity_type,
            onestop_id=getattr(change, "onestop_id", None),
        )

    def _create_update(self, change: CanonicalChange) -> None:
        entity_type = change.entity_type
        entity = self._find(entity_type, change.onestop_id)
        if entity is None:
            entity = self._create(entity_type, change.onestop_id)

        for attribute, value in change.attributes.items():
            self._assign(entity, attribute, value)

        if change.imported_from_feed_onestop_id is not None:
            entity.imported_from_feed_onestop_id = change.imported_from_feed_onestop_id
        for identifier in change.identified_by:
            entity.add_identifier(identifier)

        match change:
            case RouteChange(operated_by=operated_by) if operated_by is not None:
                assert isinstance(entity, Route)  # noqa: S101
                if entity.operated_by_onestop_id != operated_by:
                    self._touch(entity, "operated_by")
                    entity.operated_by_onestop_id = operated_by
            case RouteStopPatternChange():
                assert isinstance(entity, RouteStopPattern)  # noqa: S101
                self._assign_route_of_pattern(entity, change)
            case _:
                pass

        if _has_relationships(change):
            self._relationships.append((entity, change))
        if isinstance(entity, Stop) and id(entity) in self._touched_entities:
            self._touched_stops[entity.id] = None

    def _create(self, entity_type: EntityType, onestop_id: str) -> CanonicalEntity:
        entity = CLASS_BY_ENTITY_TYPE[entity_type](
            onestop_id=onestop_id,
            created_at=self._now,
            updated_at=self._now,
            created_or_updated_in_changeset_id=self._changeset_id,
        )
        self._repository(entity_type).add(entity)
        self._entities[(entity_type, onestop_id)] = entity
        self._created.add(id(entity))
        self._touched_entities[id(entity)] = entity
        self._outcome.created += 1
        if isinstance(entity, Stop):
            self._touched_stops[entity.id] = None
        return entity

    def _assign(self, entity: CanonicalEntity, attribute: str, value: Any) -> None:  # noqa: ANN401
        if attribute not in entity.ATTRIBUTES:
            raise ValueError(f"{entity.entity_type} has no attribute {attribute!r}")
        if entity.protects(attribute, from_import=self._from_import):
            self._log.debug(
                "Keeping edited %s of %s %s", attribute, entity.entity_type, entity.onestop_id
            )
            return
        if _same(getattr(entity, attribute), value):
            if (
                not self._from_import
                and attribute in entity.STICKY_ATTRIBUTES
                and attribute not in entity.edited_attributes
            ):
                # a human confirming the current value still pins it
                self._touch(entity, attribute)
                entity.assign(attribute, value, from_import=False)
            return
        self._touch(entity, attribute)
        entity.assign(attribute, value, from_import=self._from_import)
        self._note_recomputation(entity, attribute)

    def _note_recomputation(self, entity: CanonicalEntity, attribute: str) -> None:
        match entity:
            case Stop() if attribute == "geometry":
                self._pending.stops_moved.add(entity.onestop_id)
            case RouteStopPattern() if attribute in {"geometry", "stop_pattern"}:
                self._pending.route_stop_patterns.add(entity.onestop_id)
            case _:
                pass

    def _assign_route_of_pattern(
        self, pattern: RouteStopPattern, change: RouteStopPatternChange
    ) -> None:
        route_id = change.traversed_by
        if route_id is None and pattern.route_onestop_id is None:
            route_id = route_of_stop_pattern(pattern.onestop_id)
        if route_id is None or route_id == pattern.route_onestop_id:
            return
        if pattern.route_onestop_id is not None:
            self._pending.routes.add(pattern.route_onestop_id)
        self._touch(pattern, "route_onestop_id")
        pattern.route_onestop_id = route_id
        self._pending.route_stop_patterns.add(pattern.onestop_id)

    def _destroy(self, change: CanonicalChange) -> None:
        entity_type = change.entity_type
        entity = self._find(entity_type, change.onestop_id)
        if entity is None:
            raise EntityNotFoundError(
                entity_type, change.onestop_id, changeset_id=self._changeset_id
            )
        self._uow.flush()

        self._repositories.history.add_entity(
            OldEntity.capture(
                entity,
                action=HistoryAction.DESTROY,
                changeset_id=self._changeset_id,
                recorded_at=self._now,
            )
        )
        serves = self._repositories.serves
        links = [
            *serves.list_served_by(entity_type, entity.onestop_id),
            *serves.list_servers_of(entity_type, entity.onestop_id),
        ]
        for link in links:
            self._retire(link)

        match entity:
            case RouteStopPattern(route_onestop_id=route_id) if route_id is not None:
                self._pending.routes.add(route_id)
            case _:
                pass
        self._pending.stops_moved.discard(entity.onestop_id)
        self._pending.route_stop_patterns.discard(entity.onestop_id)
        for attribute in entity.ATTRIBUTES:
            self._touched.add((entity_type, entity.onestop_id, attribute))

        self._repository(entity_type).delete(entity)
        self._uow.flush()
        key = (entity_type, entity.onestop_id)
        self._entities.pop(key, None)
        self._touched_entities.pop(id(entity), None)
        self._touched_stops.pop(entity.id, None)
        self._destroyed[key] = entity
        self._outcome.destroyed += 1
        self._log.debug("Destroyed %s %s", entity_type, entity.onestop_id)

    # Schedule stop pairs -------------------------------------------------------

    def _create_update_pair(self, change: ScheduleStopPairChange) -> None:
        key = change.key
        pair = self._find_pair(key)
        if pair is None:
            imported_from, trip, origin, departure = key
            pair = ScheduleStopPair(
                trip=trip,
                origin_onestop_id=origin,
                origin_departure_time=departure,
                imported_from_feed_onestop_id=imported_from,
                created_or_updated_in_changeset_id=self._changeset_id,
                created_at=self._now,
                updated_at=self._now,
            )
            self._repositories.schedule_stop_pairs.add(pair)
            self._pairs[key] = pair
            self._created.add(id(pair))
            self._touched_entities[id(pair)] = pair
            self._outcome.created += 1

        for attribute, value in change.attributes.items():
            if attribute in ScheduleStopPair.KEY_ATTRIBUTES:
                continue
            if attribute not in ScheduleStopPair.ATTRIBUTES:
                raise ValueError(f"schedule_stop_pair has no attribute {attribute!r}")
            if getattr(pair, attribute) == value:
                continue
            if id(pair) not in self._touched_entities:
                self._outcome.updated += 1
            self._touch(pair, attribute)
            setattr(pair, attribute, _copy(value))
        self._pending.schedule_stop_pairs.append(pair)

    def _destroy_pair(self, change: ScheduleStopPairChange) -> None:
        key = change.key
        pair = self._find_pair(key)
        if pair is None:
            raise EntityNotFoundError(
                EntityType.SCHEDULE_STOP_PAIR,
                "/".join(str(part) for part in key),
                changeset_id=self._changeset_id,
            )
        self._repositories.schedule_stop_pairs.delete(pair)
        self._pairs.pop(key, None)
        self._touched_entities.pop(id(pair), None)
        self._outcome.destroyed += 1

    # Relationships -------------------------------------------------------------

    def _apply_relationships(self, entity: CanonicalEntity, change: CanonicalChange) -> None:
        if (entity.entity_type, entity.onestop_id) in self._destroyed:
            return
        onestop_id = entity.onestop_id
        match change:
            case StopChange():
                for server in change.served_by:
                    self._link(entity_type_of(server), server, EntityType.STOP, onestop_id)
                for server in change.not_served_by:
                    self._unlink(entity_type_of(server), server, EntityType.STOP, onestop_id)
            case OperatorChange():
                for served in change.serves:
                    self._link(EntityType.OPERATOR, onestop_id, entity_type_of(served), served)
                for served in change.does_not_serve:
                    self._unlink(EntityType.OPERATOR, onestop_id, entity_type_of(served), served)
            case RouteChange():
                for served in change.serves:
                    self._link(EntityType.ROUTE, onestop_id, EntityType.STOP, served)
                for served in change.does_not_serve:
                    self._unlink(EntityType.ROUTE, onestop_id, EntityType.STOP, served)
                if change.operated_by is not None:
                    self._link_operator_of_route(change.operated_by, onestop_id)
            case _:
                pass

    def _link_operator_of_route(self, operator_id: str, route_id: str) -> None:
        self._link(EntityType.OPERATOR, operator_id, EntityType.ROUTE, route_id)
        self._uow.flush()
        for link in self._repositories.serves.list_served_by(EntityType.ROUTE, route_id):
            if link.served_type == EntityType.STOP:
                self._link(
                    EntityType.OPERATOR, operator_id, EntityType.STOP, link.served_onestop_id
                )

    def _link(
        self,
        server_type: EntityType,
        server_id: str,
        served_type: EntityType,
        served_id: str,
    ) -> None:
        endpoints = (server_type, server_id, served_type, served_id)
        if endpoints in self._links_added:
            return
        link = ServesLink(
            server_type=server_type,
            server_onestop_id=server_id,
            served_type=served_type,
            served_onestop_id=served_id,
            created_in_changeset_id=self._changeset_id,
            created_at=self._now,
        )
        for entity_type, onestop_id, attribute in (
            (server_type, server_id, "served_by"),
            (served_type, served_id, "serves"),
        ):
            if not self._exists(entity_type, onestop_id):
                raise ReferentialIntegrityError(
                    *_other_end(endpoints, entity_type, onestop_id),
                    attribute=attribute,
                    reference=onestop_id,
                    changeset_id=self._changeset_id,
                )
        self._links_added.add(endpoints)
        if self._repositories.serves.get(*endpoints) is not None:
            return
        self._repositories.serves.add(link)
        self._note_link_change(server_type, server_id, served_type, served_id)

    def _unlink(
        self,
        server_type: EntityType,
        server_id: str,
        served_type: EntityType,
        served_id: str,
    ) -> None:
        self._uow.flush()
        link = self._repositories.serves.get(server_type, server_id, served_type, served_id)
        if link is None:
            self._log.debug(
                "No serves row %s %s -> %s %s to remove",
                server_type,
                server_id,
                served_type,
                served_id,
            )
            return
        self._links_added.discard(link.endpoints)
        self._retire(link)
        self._uow.flush()

    def _retire(self, link: ServesLink) -> None:
        self._repositories.history.add_link(
            OldServesLink.retire(link, changeset_id=self._changeset_id, destroyed_at=self._now)
        )
        self._repositories.serves.delete(link)
        self._note_link_change(
            link.server_type, link.server_onestop_id, link.served_type, link.served_onestop_id
        )

    def _note_link_change(
        self,
        server_type: EntityType,
        server_id: str,
        served_type: EntityType,
        served_id: str,
    ) -> None:
        self._touched.add((server_type, server_id, "serves"))
        self._touched.add((served_type, served_id, "served_by"))
        if server_type == EntityType.OPERATOR and served_type == EntityType.STOP:
            self._pending.operators.add(server_id)

    # Validation ----------------------------------------------------------------

    def _validate(self) -> None:
        for entity in list(self._touched_entities.values()):
            match entity:
                case Route():
                    self._require(
                        entity, "operated_by", EntityType.OPERATOR, entity.operated_by_onestop_id
                    )
                case RouteStopPattern():
                    self._require(entity, "traversed_by", EntityType.ROUTE, entity.route_onestop_id)
                    for stop_id in entity.stop_pattern:
                        self._require(entity, "stop_pattern", EntityType.STOP, stop_id)
                case ScheduleStopPair():
                    self._validate_pair(entity)
                case _:
                    pass
        for entity_type, onestop_id in self._destroyed:
            self._ensure_unreferenced(entity_type, onestop_id)

    def _require(
        self,
        entity: Entity,
        attribute: str,
        reference_type: EntityType,
        reference: str | None,
    ) -> None:
        if reference is None or self._exists(reference_type, reference):
            return
        raise ReferentialIntegrityError(
            entity.entity_type,
            getattr(entity, "onestop_id", None) or _pair_label(entity),
            attribute=attribute,
            reference=reference,
            changeset_id=self._changeset_id,
        )

    def _validate_pair(self, pair: ScheduleStopPair) -> None:
        self._require(pair, "origin_onestop_id", EntityType.STOP, pair.origin_onestop_id)
        self._require(pair, "destination_onestop_id", EntityType.STOP, pair.destination_onestop_id)
        self._require(pair, "route_onestop_id", EntityType.ROUTE, pair.route_onestop_id)
        self._require(
            pair,
            "route_stop_pattern_onestop_id",
            EntityType.ROUTE_STOP_PATTERN,
            pair.route_stop_pattern_onestop_id,
        )
        self._require(pair, "operator_onestop_id", EntityType.OPERATOR, pair.operator_onestop_id)

    def _ensure_unreferenced(self, entity_type: EntityType, onestop_id: str) -> None:
        repositories = self._repositories
        patterns = repositories.route_stop_patterns
        referenced_by: list[str] = []
        match entity_type:
            case EntityType.STOP:
                found = patterns.list_with_stop(onestop_id)
                referenced_by.extend(item.onestop_id for item in found)
            case EntityType.ROUTE:
                found = patterns.list_by_route(onestop_id)
                referenced_by.extend(item.onestop_id for item in found)
            case EntityType.OPERATOR:
                referenced_by.extend(
                    item.onestop_id for item in repositories.routes.list_operated_by(onestop_id)
                )
            case _:
                pass
        referenced_by.extend(
            _pair_label(item)
            for item in repositories.schedule_stop_pairs.list_referencing(entity_type, onestop_id)
        )
        if referenced_by:
            raise StillReferencedError(
                entity_type,
                onestop_id,
                referenced_by=referenced_by,
                changeset_id=self._changeset_id,
            )

    # Issues --------------------------------------------------------------------

    def _deprecate_issues(self, touched: set[tuple[EntityType, str, str]]) -> None:
        for entity_type, onestop_id, attribute in sorted(touched):
            self._issues.deprecate(entity_type, onestop_id, attribute)

        resolved = self._issues.resolved_ids
        untruthful = [
            issue_id
            for issue_id in self._declared
            if issue_id not in resolved or self._issues.reraised(issue_id)
        ]
        if untruthful:
            raise UntruthfulResolutionError(untruthful, changeset_id=self._changeset_id)


def _has_relationships(change: CanonicalChange) -> bool:
    match change:
        case StopChange():
            return bool(change.served_by or change.not_served_by)
        case OperatorChange():
            return bool(change.serves or change.does_not_serve)
        case RouteChange():
            return bool(change.serves or change.does_not_serve or change.operated_by)
        case _:
            return False


def _other_end(
    endpoints: tuple[EntityType, str, EntityType, str],
    missing_type: EntityType,
    missing_id: str,
) -> tuple[EntityType, str]:
    server_type, server_id, served_type, served_id = endpoints
    if (server_type, server_id) == (missing_type, missing_id):
        return served_type, served_id
    return server_type, server_id


def _pair_label(entity: Entity) -> str:
    if isinstance(entity, ScheduleStopPair):
        return f"schedule stop pair {entity.trip}@{entity.origin_onestop_id}"
    return str(entity.id)


def _same(current: Any, value: Any) -> bool:  # noqa: ANN401
    if geometry.is_geometry(current) or geometry.is_geometry(value):
        return geometry.same(current, value)
    return current == value


def _copy(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, list):
        return list(value)  # pyright: ignore[reportUnknownArgumentType, reportUnknownVariableType]
    if isinstance(value, dict):
        return dict(value)  # pyright: ignore[reportUnknownArgumentType, reportUnknownVariableType]
    return value


def _stamp_updated(entity: Entity, now: datetime) -> None:
    if isinstance(entity, CanonicalEntity | ScheduleStopPair):
        entity.updated_at = now
