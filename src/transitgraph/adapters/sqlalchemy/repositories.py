"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import Text, or_, select, type_coerce

from transitgraph.adapters.sqlalchemy.mappings import (
    TABLE_BY_ENTITY_TYPE,
    changeset_table,
    entity_with_issue_table,
    issue_table,
    old_entity_table,
    old_serves_table,
    route_stop_pattern_table,
    route_table,
    schedule_stop_pair_table,
    serves_table,
    stop_table,
)
from transitgraph.domain.model import (
    CanonicalEntity,
    Changeset,
    EntityType,
    Issue,
    OldEntity,
    OldServesLink,
    Operator,
    Route,
    RouteStopPattern,
    ScheduleStopPair,
    ServesLink,
    Stop,
    User,
    issue_types_in_category,
)
from transitgraph.domain.resolution import best_match

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from shapely.geometry import Point
    from sqlalchemy.orm import Session

    from transitgraph.domain.model import IssueCategory


class _SessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _remove(self, entity: object) -> None:
        # pending rows never reached the database
        if entity in self.session.new:
            self.session.expunge(entity)
        else:
            self.session.delete(entity)


class SqlAlchemyCanonicalRepository[TEntity: CanonicalEntity](_SessionRepository):
    """Shared helpers for repositories managing entities addressed by onestop id."""

    def __init__(self, session: Session, entity_cls: type[TEntity]) -> None:
        super().__init__(session)
        self._entity_cls = entity_cls
        self._table = TABLE_BY_ENTITY_TYPE[entity_cls.ENTITY_TYPE]

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def delete(self, entity: TEntity) -> None:
        self._remove(entity)

    def get_by_onestop_id(self, onestop_id: str) -> TEntity | None:
        stmt = select(self._entity_cls).where(self._table.c.onestop_id == onestop_id)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyOperatorRepository(SqlAlchemyCanonicalRepository[Operator]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Operator)


class SqlAlchemyRouteRepository(SqlAlchemyCanonicalRepository[Route]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Route)

    def list_operated_by(self, operator_onestop_id: str) -> Sequence[Route]:
        stmt = (
            select(Route)
            .where(route_table.c.operated_by_onestop_id == operator_onestop_id)
            .order_by(route_table.c.onestop_id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyStopRepository(SqlAlchemyCanonicalRepository[Stop]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Stop)

    def find_by_similarity(
        self, location: Point, name: str | None, *, radius_m: float, threshold: float
    ) -> tuple[Stop | None, float]:
        stmt = select(Stop).where(stop_table.c.geometry.is_not(None))
        candidates = self.session.execute(stmt).scalars()
        return best_match(candidates, location, name, radius_m=radius_m, threshold=threshold)


class SqlAlchemyRouteStopPatternRepository(SqlAlchemyCanonicalRepository[RouteStopPattern]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, RouteStopPattern)

    def list_by_route(self, route_onestop_id: str) -> Sequence[RouteStopPattern]:
        stmt = (
            select(RouteStopPattern)
            .where(route_stop_pattern_table.c.route_onestop_id == route_onestop_id)
            .order_by(route_stop_pattern_table.c.onestop_id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_with_stop(self, stop_onestop_id: str) -> Sequence[RouteStopPattern]:
        column = type_coerce(route_stop_pattern_table.c.stop_pattern, Text)
        stmt = (
            select(RouteStopPattern)
            .where(column.contains(f'"{stop_onestop_id}"', autoescape=True))
            .order_by(route_stop_pattern_table.c.onestop_id)
        )
        patterns = self.session.execute(stmt).scalars().all()
        return [pattern for pattern in patterns if stop_onestop_id in pattern.stop_pattern]


class SqlAlchemyScheduleStopPairRepository(_SessionRepository):
    def add(self, entity: ScheduleStopPair) -> None:
        self.session.add(entity)

    def delete(self, entity: ScheduleStopPair) -> None:
        self._remove(entity)

    def get_by_key(
        self,
        imported_from_feed_onestop_id: str | None,
        trip: str,
        origin_onestop_id: str,
        origin_departure_time: str | None,
    ) -> ScheduleStopPair | None:
        table = schedule_stop_pair_table
        stmt = (
            select(ScheduleStopPair)
            .where(
                table.c.imported_from_feed_onestop_id.is_not_distinct_from(
                    imported_from_feed_onestop_id
                )
            )
            .where(table.c.trip == trip)
            .where(table.c.origin_onestop_id == origin_onestop_id)
            .where(table.c.origin_departure_time.is_not_distinct_from(origin_departure_time))
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_by_route_stop_pattern(self, rsp_onestop_id: str) -> Sequence[ScheduleStopPair]:
        table = schedule_stop_pair_table
        stmt = (
            select(ScheduleStopPair)
            .where(table.c.route_stop_pattern_onestop_id == rsp_onestop_id)
            .order_by(table.c.trip, table.c.origin_departure_time)
        )
        return self.session.execute(stmt).scalars().all()

    def list_referencing(
        self, entity_type: EntityType, onestop_id: str
    ) -> Sequence[ScheduleStopPair]:
        table = schedule_stop_pair_table
        match entity_type:
            case EntityType.STOP:
                condition = or_(
                    table.c.origin_onestop_id == onestop_id,
                    table.c.destination_onestop_id == onestop_id,
                )
            case EntityType.ROUTE:
                condition = table.c.route_onestop_id == onestop_id
            case EntityType.ROUTE_STOP_PATTERN:
                condition = table.c.route_stop_pattern_onestop_id == onestop_id
            case EntityType.OPERATOR:
                condition = table.c.operator_onestop_id == onestop_id
            case _:
                return []
        stmt = select(ScheduleStopPair).where(condition).order_by(table.c.trip)
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyServesRepository(_SessionRepository):
    def add(self, entity: ServesLink) -> None:
        self.session.add(entity)

    def delete(self, link: ServesLink) -> None:
        self._remove(link)

    def get(
        self,
        server_type: EntityType,
        server_onestop_id: str,
        served_type: EntityType,
        served_onestop_id: str,
    ) -> ServesLink | None:
        stmt = (
            select(ServesLink)
            .where(serves_table.c.server_type == server_type)
            .where(serves_table.c.server_onestop_id == server_onestop_id)
            .where(serves_table.c.served_type == served_type)
            .where(serves_table.c.served_onestop_id == served_onestop_id)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_served_by(self, server_type: EntityType, onestop_id: str) -> Sequence[ServesLink]:
        stmt = (
            select(ServesLink)
            .where(serves_table.c.server_type == server_type)
            .where(serves_table.c.server_onestop_id == onestop_id)
            .order_by(serves_table.c.served_type, serves_table.c.served_onestop_id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_servers_of(self, served_type: EntityType, onestop_id: str) -> Sequence[ServesLink]:
        stmt = (
            select(ServesLink)
            .where(serves_table.c.served_type == served_type)
            .where(serves_table.c.served_onestop_id == onestop_id)
            .order_by(serves_table.c.server_type, serves_table.c.server_onestop_id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyHistoryRepository(_SessionRepository):
    def add_entity(self, record: OldEntity) -> None:
        self.session.add(record)

    def add_link(self, record: OldServesLink) -> None:
        self.session.add(record)

    def list_entities(self, onestop_id: str) -> Sequence[OldEntity]:
        stmt = (
            select(OldEntity)
            .where(old_entity_table.c.onestop_id == onestop_id)
            .order_by(old_entity_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()

    def list_links(self, onestop_id: str) -> Sequence[OldServesLink]:
        stmt = (
            select(OldServesLink)
            .where(
                or_(
                    old_serves_table.c.server_onestop_id == onestop_id,
                    old_serves_table.c.served_onestop_id == onestop_id,
                )
            )
            .order_by(old_serves_table.c.id)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyChangesetRepository(_SessionRepository):
    def add(self, entity: Changeset) -> None:
        self.session.add(entity)

    def get(self, changeset_id: int) -> Changeset | None:
        return self.session.get(Changeset, changeset_id)

    def list_pending(self) -> Sequence[Changeset]:
        stmt = (
            select(Changeset)
            .where(changeset_table.c.applied.is_(False))
            .order_by(changeset_table.c.id)
        )
        return self.session.execute(stmt).unique().scalars().all()


class SqlAlchemyIssueRepository(_SessionRepository):
    def add(self, entity: Issue) -> None:
        self.session.add(entity)

    def get(self, issue_id: int) -> Issue | None:
        return self.session.get(Issue, issue_id)

    def list_bound_to(self, entity_type: EntityType, onestop_id: str) -> Sequence[Issue]:
        bound = (
            select(entity_with_issue_table.c.issue_id)
            .where(entity_with_issue_table.c.entity_type == entity_type)
            .where(entity_with_issue_table.c.entity_onestop_id == onestop_id)
        )
        stmt = select(Issue).where(issue_table.c.id.in_(bound)).order_by(issue_table.c.id)
        return self.session.execute(stmt).scalars().all()

    def list_issues(
        self, *, open_only: bool = True, category: IssueCategory | None = None
    ) -> Sequence[Issue]:
        stmt = select(Issue).order_by(issue_table.c.id)
        if open_only:
            stmt = stmt.where(issue_table.c.open.is_(True))
        if category is not None:
            stmt = stmt.where(issue_table.c.issue_type.in_(issue_types_in_category(category)))
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyUserRepository(_SessionRepository):
    def add(self, entity: User) -> None:
        self.session.add(entity)

    def get(self, user_id: UUID) -> User | None:
        return self.session.get(User, user_id)


if TYPE_CHECKING:
    from transitgraph.domain.ports.persistence import (
        ChangesetRepository,
        HistoryRepository,
        IssueRepository,
        OperatorRepository,
        RouteRepository,
        RouteStopPatternRepository,
        ScheduleStopPairRepository,
        ServesRepository,
        StopRepository,
        UserRepository,
    )

    _session_stub = cast("Session", object())
    _operator_repo: OperatorRepository = SqlAlchemyOperatorRepository(_session_stub)
    _route_repo: RouteRepository = SqlAlchemyRouteRepository(_session_stub)
    _stop_repo: StopRepository = SqlAlchemyStopRepository(_session_stub)
    _rsp_repo: RouteStopPatternRepository = SqlAlchemyRouteStopPatternRepository(_session_stub)
    _ssp_repo: ScheduleStopPairRepository = SqlAlchemyScheduleStopPairRepository(_session_stub)
    _serves_repo: ServesRepository = SqlAlchemyServesRepository(_session_stub)
    _history_repo: HistoryRepository = SqlAlchemyHistoryRepository(_session_stub)
    _changeset_repo: ChangesetRepository = SqlAlchemyChangesetRepository(_session_stub)
    _issue_repo: IssueRepository = SqlAlchemyIssueRepository(_session_stub)
    _user_repo: UserRepository = SqlAlchemyUserRepository(_session_stub)
