"""Derived attributes recomputed after a changeset's entries are applied.

Dependency order:

1. route stop patterns get ``stop_distances`` from their line and stop geometries,
   and their schedule stop pairs get matching ``*_dist_traveled`` values,
2. routes get a multi-line built from their route stop patterns,
3. operators get the convex hull of the stops they serve.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from shapely.geometry import LineString

from transitgraph.domain import geometry
from transitgraph.domain.model import EntityType, IssueType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from shapely.geometry import Point
    from shapely.geometry.base import BaseGeometry

    from transitgraph.domain.issues import IssueTracker
    from transitgraph.domain.model import (
        Entity,
        Operator,
        Route,
        RouteStopPattern,
        ScheduleStopPair,
        Stop,
    )
    from transitgraph.domain.ports import TransitRepositories

log = logging.getLogger(__name__)

type Touch = Callable[[Entity, str], None]


@dataclass(slots=True)
class ComputedAttributes:
    route_stop_patterns: int = 0
    routes: int = 0
    operators: int = 0
    schedule_stop_pairs: int = 0
    touched: set[tuple[EntityType, str, str]] = field(
        default_factory=set[tuple[EntityType, str, str]]
    )


@dataclass(slots=True)
class PendingRecomputation:
    """What the applied entries changed, as input for the recomputation."""

    route_stop_patterns: set[str] = field(default_factory=set[str])
    stops_moved: set[str] = field(default_factory=set[str])
    routes: set[str] = field(default_factory=set[str])
    operators: set[str] = field(default_factory=set[str])
    schedule_stop_pairs: list[ScheduleStopPair] = field(
        default_factory=list["ScheduleStopPair"]
    )


# Pure computations ---------------------------------------------------------------


def stop_distances(
    path: LineString, stops: Sequence[Point | None], *, gap_threshold_m: float
) -> tuple[list[float | None], list[int]]:
    """Cumulative distance along ``path`` for each stop, in meters.

    Stops are projected in order and never before the previous stop's
    projection. A stop farther than ``gap_threshold_m`` from its projection
    gets ``None`` and does not advance the position on the line. Returns the
    distances and the indices of the stops that could not be placed.
    """

    distances: list[float | None] = []
    gaps: list[int] = []
    offset = 0.0
    for index, stop in enumerate(stops):
        if stop is None:
            distances.append(None)
            gaps.append(index)
            continue
        candidate, projected = geometry.project_along(path, stop, offset)
        if geometry.distance_m(stop, projected) > gap_threshold_m:
            distances.append(None)
            gaps.append(index)
            continue
        offset = candidate
        distances.append(round(geometry.distance_along_m(path, offset), 1))
    return distances, gaps


def gtfs_seconds(value: str | None) -> int:
    """Seconds since service-day start for ``H:MM:SS`` times (hours may exceed 24)."""

    if not value:
        return -1
    hours, minutes, seconds = (int(part) for part in value.split(":"))
    return hours * 3600 + minutes * 60 + seconds


def trip_distances(
    pairs: Sequence[ScheduleStopPair], pattern: RouteStopPattern
) -> dict[ScheduleStopPair, tuple[float | None, float | None]]:
    """Match one trip's pairs to pattern positions in departure order."""

    result: dict[ScheduleStopPair, tuple[float | None, float | None]] = {}
    stop_pattern = pattern.stop_pattern
    distances = pattern.stop_distances
    position = 0
    for pair in sorted(pairs, key=lambda item: gtfs_seconds(item.origin_departure_time)):
        origin = _index_from(stop_pattern, pair.origin_onestop_id, position)
        if origin is None:
            continue
        destination = _index_from(stop_pattern, pair.destination_onestop_id, origin + 1)
        if destination is None:
            continue
        result[pair] = (_at(distances, origin), _at(distances, destination))
        position = destination
    return result


def _index_from(items: Sequence[str], value: str | None, start: int) -> int | None:
    if value is None:
        return None
    try:
        return items.index(value, start)
    except ValueError:
        return None


def _at(values: Sequence[float | None], index: int) -> float | None:
    return values[index] if index < len(values) else None


def route_geometry(patterns: Iterable[RouteStopPattern]) -> BaseGeometry | None:
    lines: list[LineString] = []
    for pattern in patterns:
        if pattern.geometry is not None:
            lines.extend(geometry.line_parts(pattern.geometry))
    return geometry.multi_line(lines)


def operator_geometry(stops: Iterable[Stop]) -> BaseGeometry | None:
    return geometry.convex_hull(
        [stop.geometry.centroid for stop in stops if stop.geometry is not None]
    )


# Recomputation -------------------------------------------------------------------


class ComputedAttributeUpdater:
    """Recompute derived attributes for everything a changeset touched.

    ``touch`` is called before every (entity, attribute) that actually changes so
    the caller can snapshot the old state, bump versions and deprecate issues.
    """

    def __init__(
        self,
        repositories: TransitRepositories,
        issues: IssueTracker,
        touch: Touch,
        *,
        gap_threshold_m: float,
        logger: logging.Logger | None = None,
    ) -> None:
        self._repositories = repositories
        self._issues = issues
        self._touch = touch
        self._gap_threshold_m = gap_threshold_m
        self._log = logger or log

    def update(self, pending: PendingRecomputation) -> ComputedAttributes:
        result = ComputedAttributes()
        patterns = self._patterns_to_update(pending)
        if patterns:
            self._log.info("Calculating distances")
        for pattern in patterns:
            if self._update_stop_distances(pattern, result):
                result.route_stop_patterns += 1
            if pattern.route_onestop_id is not None:
                pending.routes.add(pattern.route_onestop_id)
        self._update_schedule_stop_pairs(patterns, pending.schedule_stop_pairs, result)

        for route_id in sorted(pending.routes):
            route = self._repositories.routes.get_by_onestop_id(route_id)
            if route is not None and self._update_route(route, result):
                result.routes += 1

        operators = set(pending.operators)
        for stop_id in pending.stops_moved:
            operators.update(
                link.server_onestop_id
                for link in self._repositories.serves.list_servers_of(EntityType.STOP, stop_id)
                if link.server_type == EntityType.OPERATOR
            )
        for operator_id in sorted(operators):
            operator = self._repositories.operators.get_by_onestop_id(operator_id)
            if operator is not None and self._update_operator(operator, result):
                result.operators += 1
        return result

    def _record(self, result: ComputedAttributes, entity: Entity, attribute: str) -> None:
        onestop_id = getattr(entity, "onestop_id", None)
        if onestop_id is not None:
            result.touched.add((entity.entity_type, onestop_id, attribute))
        self._touch(entity, attribute)

    # Route stop patterns ---------------------------------------------------------

    def _patterns_to_update(self, pending: PendingRecomputation) -> list[RouteStopPattern]:
        repository = self._repositories.route_stop_patterns
        found: dict[str, RouteStopPattern] = {}
        for onestop_id in sorted(pending.route_stop_patterns):
            pattern = repository.get_by_onestop_id(onestop_id)
            if pattern is not None:
                found[onestop_id] = pattern
        for stop_id in sorted(pending.stops_moved):
            for pattern in repository.list_with_stop(stop_id):
                found.setdefault(pattern.onestop_id, pattern)
        return list(found.values())

    def _update_stop_distances(
        self, pattern: RouteStopPattern, result: ComputedAttributes
    ) -> bool:
        stops = self._stops(pattern.stop_pattern)
        if isinstance(pattern.geometry, LineString):
            locations = [
                stop.geometry.centroid if stop is not None and stop.geometry is not None else None
                for stop in stops
            ]
            distances, gaps = stop_distances(
                pattern.geometry, locations, gap_threshold_m=self._gap_threshold_m
            )
        else:
            distances, gaps = [None] * len(stops), []
            self._log.info(
                "Route stop pattern %s has no line geometry; distances unknown",
                pattern.onestop_id,
            )

        for index in gaps:
            stop_id = pattern.stop_pattern[index]
            self._log.info(
                "Stop %s could not be placed on route stop pattern %s",
                stop_id,
                pattern.onestop_id,
            )
            self._issues.record(
                IssueType.STOP_RSP_DISTANCE_GAP,
                [
                    (EntityType.STOP, stop_id, "geometry"),
                    (EntityType.ROUTE_STOP_PATTERN, pattern.onestop_id, "stop_distances"),
                ],
                details=f"Stop {stop_id} is too far from route stop pattern {pattern.onestop_id}",
            )

        if distances == pattern.stop_distances:
            return False
        self._record(result, pattern, "stop_distances")
        pattern.stop_distances = distances
        return True

    def _stops(self, onestop_ids: Sequence[str]) -> list[Stop | None]:
        cache: dict[str, Stop | None] = {}
        for onestop_id in onestop_ids:
            if onestop_id not in cache:
                cache[onestop_id] = self._repositories.stops.get_by_onestop_id(onestop_id)
        return [cache[onestop_id] for onestop_id in onestop_ids]

    # Schedule stop pairs ---------------------------------------------------------

    def _update_schedule_stop_pairs(
        self,
        patterns: Sequence[RouteStopPattern],
        touched: Sequence[ScheduleStopPair],
        result: ComputedAttributes,
    ) -> None:
        by_pattern: dict[str, dict[int, ScheduleStopPair]] = {}
        for pattern in patterns:
            pairs = self._repositories.schedule_stop_pairs.list_by_route_stop_pattern(
                pattern.onestop_id
            )
            by_pattern[pattern.onestop_id] = {id(pair): pair for pair in pairs}
        for pair in touched:
            if pair.route_stop_pattern_onestop_id is not None:
                by_pattern.setdefault(pair.route_stop_pattern_onestop_id, {})[id(pair)] = pair

        known: Mapping[str, RouteStopPattern] = {item.onestop_id: item for item in patterns}
        for pattern_id, pairs in by_pattern.items():
            pattern = known.get(pattern_id)
            if pattern is None:
                pattern = self._repositories.route_stop_patterns.get_by_onestop_id(pattern_id)
            if pattern is None:
                continue
            trips: dict[str, list[ScheduleStopPair]] = {}
            for pair in pairs.values():
                trips.setdefault(pair.trip, []).append(pair)
            for trip_pairs in trips.values():
                for pair, (origin, destination) in trip_distances(trip_pairs, pattern).items():
                    if (
                        pair.origin_dist_traveled == origin
                        and pair.destination_dist_traveled == destination
                    ):
                        continue
                    self._record(result, pair, "origin_dist_traveled")
                    pair.origin_dist_traveled = origin
                    pair.destination_dist_traveled = destination
                    result.schedule_stop_pairs += 1

    # Routes and operators --------------------------------------------------------

    def _update_route(self, route: Route, result: ComputedAttributes) -> bool:
        patterns = self._repositories.route_stop_patterns.list_by_route(route.onestop_id)
        combined = route_geometry(patterns)
        if combined is None or geometry.same(route.geometry, combined):
            return False
        self._record(result, route, "geometry")
        route.geometry = combined
        return True

    def _update_operator(self, operator: Operator, result: ComputedAttributes) -> bool:
        stops: list[Stop] = []
        for link in self._repositories.serves.list_served_by(
            EntityType.OPERATOR, operator.onestop_id
        ):
            if link.served_type != EntityType.STOP:
                continue
            stop = self._repositories.stops.get_by_onestop_id(link.served_onestop_id)
            if stop is not None:
                stops.append(stop)
        hull = operator_geometry(stops)
        if hull is None or geometry.same(operator.geometry, hull):
            return False
        self._record(result, operator, "geometry")
        operator.geometry = hull
        return True
