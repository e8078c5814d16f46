"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from transitgraph.domain.model import (
    CanonicalEntity,
    Changeset,
    Issue,
    Operator,
    Route,
    RouteStopPattern,
    ScheduleStopPair,
    ServesLink,
    Stop,
    User,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from shapely.geometry import Point

    from transitgraph.domain.model import EntityType, IssueCategory, OldEntity, OldServesLink


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class CanonicalEntityRepository[TCanonical: CanonicalEntity](Repository[TCanonical], Protocol):
    """Repository contract for entities addressed by onestop id."""

    def get_by_onestop_id(self, onestop_id: str) -> TCanonical | None: ...

    def delete(self, entity: TCanonical) -> None: ...


@runtime_checkable
class OperatorRepository(CanonicalEntityRepository[Operator], Protocol):
    """Repository contract for operators."""


@runtime_checkable
class RouteRepository(CanonicalEntityRepository[Route], Protocol):
    """Repository contract for routes."""

    def list_operated_by(self, operator_onestop_id: str) -> Sequence[Route]: ...


@runtime_checkable
class StopRepository(CanonicalEntityRepository[Stop], Protocol):
    """Repository contract for stops."""

    def find_by_similarity(
        self, location: Point, name: str | None, *, radius_m: float, threshold: float
    ) -> tuple[Stop | None, float]: ...


@runtime_checkable
class RouteStopPatternRepository(CanonicalEntityRepository[RouteStopPattern], Protocol):
    """Repository contract for route stop patterns."""

    def list_by_route(self, route_onestop_id: str) -> Sequence[RouteStopPattern]: ...

    def list_with_stop(self, stop_onestop_id: str) -> Sequence[RouteStopPattern]: ...


@runtime_checkable
class ScheduleStopPairRepository(Repository[ScheduleStopPair], Protocol):
    """Repository contract for schedule stop pairs."""

    def get_by_key(
        self,
        imported_from_feed_onestop_id: str | None,
        trip: str,
        origin_onestop_id: str,
        origin_departure_time: str | None,
    ) -> ScheduleStopPair | None: ...

    def delete(self, entity: ScheduleStopPair) -> None: ...

    def list_by_route_stop_pattern(self, rsp_onestop_id: str) -> Sequence[ScheduleStopPair]: ...

    def list_referencing(
        self, entity_type: EntityType, onestop_id: str
    ) -> Sequence[ScheduleStopPair]: ...


@runtime_checkable
class ServesRepository(Repository[ServesLink], Protocol):
    """Repository contract for the serves relation."""

    def get(
        self,
        server_type: EntityType,
        server_onestop_id: str,
        served_type: EntityType,
        served_onestop_id: str,
    ) -> ServesLink | None: ...

    def delete(self, link: ServesLink) -> None: ...

    def list_served_by(self, server_type: EntityType, onestop_id: str) -> Sequence[ServesLink]: ...

    def list_servers_of(self, served_type: EntityType, onestop_id: str) -> Sequence[ServesLink]: ...


@runtime_checkable
class HistoryRepository(Protocol):
    """Append-only store of superseded entity versions and retired links."""

    def add_entity(self, record: OldEntity) -> None: ...

    def add_link(self, record: OldServesLink) -> None: ...

    def list_entities(self, onestop_id: str) -> Sequence[OldEntity]: ...

    def list_links(self, onestop_id: str) -> Sequence[OldServesLink]: ...


@runtime_checkable
class ChangesetRepository(Repository[Changeset], Protocol):
    """Repository contract for changesets."""

    def get(self, changeset_id: int) -> Changeset | None: ...

    def list_pending(self) -> Sequence[Changeset]: ...


@runtime_checkable
class IssueRepository(Repository[Issue], Protocol):
    """Repository contract for issues."""

    def get(self, issue_id: int) -> Issue | None: ...

    def list_bound_to(self, entity_type: EntityType, onestop_id: str) -> Sequence[Issue]: ...

    def list_issues(
        self, *, open_only: bool = True, category: IssueCategory | None = None
    ) -> Sequence[Issue]: ...


@runtime_checkable
class UserRepository(Repository[User], Protocol):
    """Repository contract for users."""

    def get(self, user_id: UUID) -> User | None: ...
