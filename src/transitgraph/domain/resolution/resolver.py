"""Entity resolution: map raw feed records onto canonical operators, routes and stops.

Find-or-create always checks, in order:
1. the persistent store (stops: by location and name similarity first, then by onestop id),
2. the in-run cache by onestop id,
3. a newly derived entity.

Entities found in the store are never mutated; the resolver works on detached
copies so that nothing leaks into the store before a changeset is applied.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from transitgraph.config.imports import ImportConfig
from transitgraph.domain import geometry
from transitgraph.domain.model import EntityType, Operator, Route, Stop, gtfs_identifier
from transitgraph.domain.resolution.resolved import ResolvedFeed
from transitgraph.domain.resolution.translator import (
    operator_from_feed,
    route_from_feed,
    stop_from_feed,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shapely.geometry import LineString

    from transitgraph.domain.feed import FeedGraph, FeedRoute, OperatorInFeed
    from transitgraph.domain.model import CanonicalEntity
    from transitgraph.domain.ports import (
        CanonicalEntityRepository,
        OperatorRepository,
        RouteRepository,
        StopRepository,
    )

log = logging.getLogger(__name__)


class EntityResolver:
    def __init__(  # noqa: PLR0913
        self,
        graph: FeedGraph,
        *,
        feed_onestop_id: str,
        operators_in_feed: Sequence[OperatorInFeed],
        stops: StopRepository,
        routes: RouteRepository,
        operators: OperatorRepository,
        config: ImportConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._graph = graph
        self._feed_onestop_id = feed_onestop_id
        self._operators_in_feed = tuple(operators_in_feed)
        self._stops = stops
        self._routes = routes
        self._operators = operators
        self._config = config or ImportConfig()
        self._log = logger or log
        self._cache: dict[str, CanonicalEntity] = {}

    def resolve(self) -> ResolvedFeed:
        resolved = ResolvedFeed(feed_onestop_id=self._feed_onestop_id)
        self._resolve_stops(resolved)
        self._resolve_routes(resolved)
        self._resolve_operators(resolved)
        self._log.info(
            "Resolved feed %s: operators=%s routes=%s stops=%s",
            self._feed_onestop_id,
            len(resolved.operators),
            len(resolved.routes()),
            len(resolved.stops()),
        )
        return resolved

    # Find-or-create -------------------------------------------------------------

    def _find_or_create[TEntity: CanonicalEntity](
        self, candidate: TEntity, repository: CanonicalEntityRepository[TEntity]
    ) -> TEntity:
        stored = repository.get_by_onestop_id(candidate.onestop_id)
        if stored is not None:
            return self._adopt(stored)
        return self._cached_or(candidate)

    def _adopt[TEntity: CanonicalEntity](self, stored: TEntity) -> TEntity:
        cached = self._cache.get(stored.onestop_id)
        if isinstance(cached, type(stored)):
            return cached
        copy = stored.detached_copy()
        self._cache[stored.onestop_id] = copy
        return copy

    def _cached_or[TEntity: CanonicalEntity](self, candidate: TEntity) -> TEntity:
        cached = self._cache.get(candidate.onestop_id)
        if isinstance(cached, type(candidate)):
            return cached
        self._cache[candidate.onestop_id] = candidate
        return candidate

    def _identify(self, entity: CanonicalEntity, entity_type: EntityType, raw_id: str) -> None:
        entity.add_identifier(gtfs_identifier(self._feed_onestop_id, entity_type, raw_id))

    # Stops ----------------------------------------------------------------------

    def _resolve_stops(self, resolved: ResolvedFeed) -> None:
        default_timezone = next(
            (agency.timezone for agency in self._graph.agencies() if agency.timezone), None
        )
        for station, members in self._graph.stations().items():
            candidate = stop_from_feed(
                station,
                feed_onestop_id=self._feed_onestop_id,
                default_timezone=default_timezone,
            )
            found, score = self._stops.find_by_similarity(
                geometry.point(station.lon, station.lat),
                station.name,
                radius_m=self._config.similarity_radius_m,
                threshold=self._config.similarity_threshold,
            )
            if found is not None:
                self._log.debug(
                    "Matched station %s to stop %s (score=%.2f)",
                    station.stop_id,
                    found.onestop_id,
                    score,
                )
                stop = self._adopt(found)
            else:
                stop = self._find_or_create(candidate, self._stops)
            for member in members:
                resolved.record(member, stop)
                self._identify(stop, EntityType.STOP, member.stop_id)

    # Routes ---------------------------------------------------------------------

    def _resolve_routes(self, resolved: ResolvedFeed) -> None:
        for feed_route in self._graph.routes():
            stops = self._stops_of(feed_route, resolved)
            if not stops:
                self._log.debug("Skipping route %s without resolvable stops", feed_route.route_id)
                continue
            candidate = route_from_feed(
                feed_route, stops, feed_onestop_id=self._feed_onestop_id
            )
            route = self._find_or_create(candidate, self._routes)
            route.geometry = self._route_geometry(feed_route)
            resolved.record(feed_route, route)
            self._identify(route, EntityType.ROUTE, feed_route.route_id)
            for stop in stops:
                resolved.link_serves(route, stop)

    def _stops_of(self, feed_route: FeedRoute, resolved: ResolvedFeed) -> list[Stop]:
        stops: dict[Stop, None] = {}
        for feed_stop in self._graph.stops_of_route(feed_route):
            stop = resolved.stop_for(feed_stop)
            if stop is not None:
                stops.setdefault(stop)
        return list(stops)

    def _route_geometry(self, feed_route: FeedRoute) -> geometry.MultiLineString | None:
        lines: list[LineString] = []
        for trip in self._graph.trips_of_route(feed_route):
            shape = self._graph.shape_line(trip.shape_id)
            if shape is not None:
                lines.append(shape)
        return geometry.multi_line(lines)

    # Operators ------------------------------------------------------------------

    def _resolve_operators(self, resolved: ResolvedFeed) -> None:
        for declaration in self._operators_in_feed:
            agency = self._graph.agency(declaration.gtfs_agency_id)
            if agency is None:
                self._log.warning(
                    "Declared operator %s refers to unknown agency %s",
                    declaration.operator_onestop_id,
                    declaration.gtfs_agency_id,
                )
                continue
            routes: dict[Route, None] = {}
            for feed_route in self._graph.routes_of_agency(agency):
                route = resolved.route_for(feed_route)
                if route is not None:
                    routes.setdefault(route)
            stops: dict[Stop, None] = {}
            for route in routes:
                for stop in resolved.stops_of(route):
                    stops.setdefault(stop)

            candidate = operator_from_feed(
                agency,
                list(stops),
                declared_onestop_id=declaration.operator_onestop_id,
                feed_onestop_id=self._feed_onestop_id,
            )
            operator: Operator = self._find_or_create(candidate, self._operators)
            resolved.record(agency, operator)
            self._identify(operator, EntityType.OPERATOR, agency.agency_id)
            for route in routes:
                resolved.link_serves(operator, route)
            for stop in stops:
                resolved.link_serves(operator, stop)
            resolved.add_operator(operator)
