"""Serialize a resolved feed into ordered, size-bounded batches of changes.

Batches come out in a fixed order: operators, stops, routes, route stop
patterns, then schedule stop pairs. Entity batches hold at most
``chunk_size`` entities. Schedule stop pairs are batched by trip, longest
trips first, so that every batch carries roughly ``stop_time_batch_size``
stop-times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import batched, pairwise
from typing import TYPE_CHECKING, Any

from transitgraph.config.imports import ImportConfig
from transitgraph.domain import geometry, onestop_id
from transitgraph.domain.model import (
    ChangeAction,
    OperatorChange,
    RouteChange,
    RouteStopPatternChange,
    ScheduleStopPairChange,
    StopChange,
)

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from shapely.geometry import LineString

    from transitgraph.domain.feed import FeedGraph, ServiceDescriptor, StopTime, Trip
    from transitgraph.domain.model import CanonicalEntity, EntityChange, Operator, Route, Stop
    from transitgraph.domain.resolution import ResolvedFeed

log = logging.getLogger(__name__)


@dataclass(slots=True)
class _Pattern:
    onestop_id: str
    route: Route
    stop_pattern: list[str]
    line: LineString
    is_generated: bool
    trips: list[str] = field(default_factory=list[str])


class ChangesetEmitter:
    def __init__(
        self,
        graph: FeedGraph,
        resolved: ResolvedFeed,
        *,
        config: ImportConfig | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._graph = graph
        self._resolved = resolved
        self._config = config or ImportConfig()
        self._log = logger or log
        self._patterns: dict[str, _Pattern] = {}
        self._pattern_by_trip: dict[str, _Pattern] = {}

    @property
    def feed_onestop_id(self) -> str:
        return self._resolved.feed_onestop_id

    def emit(self) -> Iterator[list[EntityChange]]:
        resolved = self._resolved
        routes = resolved.routes()
        self._build_patterns(routes)

        yield from self._chunked(self._operator_change(item) for item in resolved.operators)
        yield from self._chunked(self._stop_change(item) for item in resolved.stops())
        yield from self._chunked(self._route_change(item) for item in routes)
        yield from self._chunked(
            self._route_stop_pattern_change(item) for item in self._patterns.values()
        )
        yield from self._schedule_stop_pair_batches(routes)

    def _chunked(self, changes: Iterator[EntityChange]) -> Iterator[list[EntityChange]]:
        for chunk in batched(changes, self._config.chunk_size):
            yield list(chunk)

    # Canonical entities ----------------------------------------------------------

    def _base_attributes(self, entity: CanonicalEntity) -> dict[str, Any]:
        attributes: dict[str, Any] = {"name": entity.name, "tags": dict(entity.tags)}
        if entity.geometry is not None:
            attributes["geometry"] = entity.geometry
        return attributes

    def _operator_change(self, operator: Operator) -> OperatorChange:
        attributes = self._base_attributes(operator)
        attributes["website"] = operator.website
        attributes["timezone"] = operator.timezone
        return OperatorChange(
            action=ChangeAction.CREATE_UPDATE,
            onestop_id=operator.onestop_id,
            identified_by=operator.identifiers,
            imported_from_feed_onestop_id=self.feed_onestop_id,
            attributes=attributes,
        )

    def _stop_change(self, stop: Stop) -> StopChange:
        attributes = self._base_attributes(stop)
        attributes["timezone"] = stop.timezone
        if stop.wheelchair_boarding is not None:
            attributes["wheelchair_boarding"] = stop.wheelchair_boarding
        return StopChange(
            action=ChangeAction.CREATE_UPDATE,
            onestop_id=stop.onestop_id,
            identified_by=stop.identifiers,
            imported_from_feed_onestop_id=self.feed_onestop_id,
            attributes=attributes,
        )

    def _route_change(self, route: Route) -> RouteChange:
        attributes = self._base_attributes(route)
        attributes["vehicle_type"] = route.vehicle_type
        attributes["color"] = route.color
        operators = self._resolved.operators_of(route)
        return RouteChange(
            action=ChangeAction.CREATE_UPDATE,
            onestop_id=route.onestop_id,
            identified_by=route.identifiers,
            imported_from_feed_onestop_id=self.feed_onestop_id,
            attributes=attributes,
            operated_by=operators[0].onestop_id if operators else None,
            serves=tuple(stop.onestop_id for stop in self._resolved.stops_of(route)),
        )

    # Route stop patterns ---------------------------------------------------------

    def _build_patterns(self, routes: Sequence[Route]) -> None:
        for route in routes:
            for feed_route in self._resolved.raw_routes(route):
                for trip in self._graph.trips_of_route(feed_route):
                    self._add_trip_to_pattern(route, trip)
        self._log.info("Derived %s route stop patterns", len(self._patterns))

    def _add_trip_to_pattern(self, route: Route, trip: Trip) -> None:
        stops = self._trip_stops(trip)
        if len(stops) < 2:  # noqa: PLR2004
            self._log.debug("Trip %s has fewer than two resolved stops", trip.trip_id)
            return
        stop_pattern = [stop.onestop_id for stop in stops]
        line = self._graph.shape_line(trip.shape_id)
        is_generated = line is None
        if line is None:
            points = [stop.geometry.centroid for stop in stops if stop.geometry is not None]
            if len(points) < 2:  # noqa: PLR2004
                return
            line = geometry.line((item.x, item.y) for item in points)
        pattern_id = onestop_id.route_stop_pattern_onestop_id(
            route.onestop_id, stop_pattern, geometry.to_wkt(line)
        )
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            pattern = _Pattern(
                onestop_id=pattern_id,
                route=route,
                stop_pattern=stop_pattern,
                line=line,
                is_generated=is_generated,
            )
            self._patterns[pattern_id] = pattern
        pattern.trips.append(trip.trip_id)
        self._pattern_by_trip[trip.trip_id] = pattern

    def _trip_stops(self, trip: Trip) -> list[Stop]:
        stops: list[Stop] = []
        for stop_time in self._graph.stop_times(trip.trip_id):
            feed_stop = self._graph.stop(stop_time.stop_id)
            stop = self._resolved.stop_for(feed_stop) if feed_stop is not None else None
            if stop is not None:
                stops.append(stop)
        return stops

    def _route_stop_pattern_change(self, pattern: _Pattern) -> RouteStopPatternChange:
        return RouteStopPatternChange(
            action=ChangeAction.CREATE_UPDATE,
            onestop_id=pattern.onestop_id,
            imported_from_feed_onestop_id=self.feed_onestop_id,
            traversed_by=pattern.route.onestop_id,
            attributes={
                "geometry": pattern.line,
                "stop_pattern": list(pattern.stop_pattern),
                "is_generated": pattern.is_generated,
                "trips": list(pattern.trips),
            },
        )

    # Schedule stop pairs ---------------------------------------------------------

    def _schedule_stop_pair_batches(
        self, routes: Sequence[Route]
    ) -> Iterator[list[EntityChange]]:
        emitted = {route.onestop_id for route in routes}
        batch: list[Trip] = []
        total = 0
        for trip in self._graph.trips_by_stop_time_count():
            route = self._route_of_trip(trip)
            if route is None or route.onestop_id not in emitted:
                continue
            batch.append(trip)
            total += self._graph.stop_time_count(trip.trip_id)
            if total > self._config.stop_time_batch_size:
                yield self._schedule_stop_pairs(batch)
                batch, total = [], 0
        if batch:
            yield self._schedule_stop_pairs(batch)

    def _route_of_trip(self, trip: Trip) -> Route | None:
        feed_route = self._graph.route(trip.route_id)
        if feed_route is None:
            return None
        return self._resolved.route_for(feed_route)

    def _schedule_stop_pairs(self, trips: Sequence[Trip]) -> list[EntityChange]:
        changes: list[EntityChange] = []
        for trip in trips:
            route = self._route_of_trip(trip)
            if route is None:
                continue
            for origin, destination in pairwise(self._graph.stop_times(trip.trip_id)):
                change = self._schedule_stop_pair_change(trip, route, origin, destination)
                if change is not None:
                    changes.append(change)
        self._log.debug("Emitting %s schedule stop pairs for %s trips", len(changes), len(trips))
        return changes

    def _resolved_stop(self, stop_id: str) -> Stop | None:
        feed_stop = self._graph.stop(stop_id)
        return self._resolved.stop_for(feed_stop) if feed_stop is not None else None

    def _schedule_stop_pair_change(
        self, trip: Trip, route: Route, origin: StopTime, destination: StopTime
    ) -> ScheduleStopPairChange | None:
        origin_stop = self._resolved_stop(origin.stop_id)
        destination_stop = self._resolved_stop(destination.stop_id)
        if origin_stop is None or destination_stop is None:
            self._log.debug(
                "Skipping pair %s -> %s on trip %s: stop not resolved",
                origin.stop_id,
                destination.stop_id,
                trip.trip_id,
            )
            return None

        operators = self._resolved.operators_of(route)
        pattern = self._pattern_by_trip.get(trip.trip_id)
        attributes: dict[str, Any] = {
            "imported_from_feed_onestop_id": self.feed_onestop_id,
            "trip": trip.trip_id,
            "origin_onestop_id": origin_stop.onestop_id,
            "origin_departure_time": origin.departure_time,
            "destination_onestop_id": destination_stop.onestop_id,
            "route_onestop_id": route.onestop_id,
            "route_stop_pattern_onestop_id": pattern.onestop_id if pattern else None,
            "operator_onestop_id": operators[0].onestop_id if operators else None,
            "origin_timezone": origin_stop.timezone,
            "destination_timezone": destination_stop.timezone,
            "origin_arrival_time": origin.arrival_time,
            "destination_arrival_time": destination.arrival_time,
            "destination_departure_time": destination.departure_time,
            "trip_headsign": origin.stop_headsign or trip.headsign,
            "trip_short_name": trip.short_name,
            "wheelchair_accessible": trip.wheelchair_accessible or 0,
            "bikes_allowed": trip.bikes_allowed or 0,
            "pickup_type": origin.pickup_type or 0,
            "drop_off_type": destination.drop_off_type or 0,
            "origin_dist_traveled": origin.shape_dist_traveled or 0,
            "destination_dist_traveled": destination.shape_dist_traveled or 0,
        }
        attributes.update(_service_attributes(self._graph.service(trip.service_id)))
        return ScheduleStopPairChange(action=ChangeAction.CREATE_UPDATE, attributes=attributes)


def _service_attributes(service: ServiceDescriptor | None) -> dict[str, Any]:
    if service is None:
        return {}
    return {
        "service_start_date": service.start_date,
        "service_end_date": service.end_date,
        "service_days_of_week": list(service.days_of_week),
        "service_added_dates": list(service.added_dates),
        "service_except_dates": list(service.except_dates),
    }
