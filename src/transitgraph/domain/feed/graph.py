"""In-memory graph of raw feed records.

Responsibilities:
- index every record type by its feed-local id,
- link agency↔route, route↔trip and trip↔stop (through stop-times),
- count stop-times per trip for batching,
- turn shape points into one line per shape,
- merge calendars and calendar dates into one service descriptor per service id.

Records referring to a missing parent are left out of that relationship.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from transitgraph.domain import geometry
from transitgraph.domain.feed.adjacency import AdjacencyMap
from transitgraph.domain.feed.records import Agency, FeedRoute, FeedStop, Trip

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import date

    from shapely.geometry import LineString

    from transitgraph.domain.feed.records import (
        Calendar,
        CalendarDate,
        FeedNode,
        ShapePoint,
        StopTime,
    )
    from transitgraph.domain.ports.feed_source import FeedSource

log = logging.getLogger(__name__)

NO_SERVICE_DAYS: tuple[bool, ...] = (False,) * 7


@dataclass(slots=True, kw_only=True)
class ServiceDescriptor:
    service_id: str
    start_date: date | None = None
    end_date: date | None = None
    days_of_week: tuple[bool, ...] = NO_SERVICE_DAYS
    added_dates: list[date] = field(default_factory=list["date"])
    except_dates: list[date] = field(default_factory=list["date"])

    def apply_exception(self, exception: CalendarDate) -> None:
        if exception.is_added:
            self.added_dates.append(exception.date)
        else:
            self.except_dates.append(exception.date)


class FeedGraphError(RuntimeError):
    """Raised when the graph is queried before ``load()``."""


class FeedGraph:
    """Typed indices and a bidirectional adjacency graph over one feed."""

    def __init__(self, source: FeedSource, *, logger: logging.Logger | None = None) -> None:
        self._source = source
        self._log = logger or log
        self._loaded = False

        self._agencies: dict[str, Agency] = {}
        self._routes: dict[str, FeedRoute] = {}
        self._stops: dict[str, FeedStop] = {}
        self._trips: dict[str, Trip] = {}

        self._children: AdjacencyMap[FeedNode] = AdjacencyMap()
        self._parents: AdjacencyMap[FeedNode] = AdjacencyMap()

        self._stop_times: dict[str, list[StopTime]] = {}
        self._stop_time_counts: Counter[str] = Counter()
        self._shapes: dict[str, LineString] = {}
        self._services: dict[str, ServiceDescriptor] = {}

    # Loading -------------------------------------------------------------------

    def load(self) -> FeedGraph:
        source = self._source
        self._agencies = {agency.agency_id: agency for agency in source.agencies()}
        self._routes = {route.route_id: route for route in source.routes()}
        self._stops = {stop.stop_id: stop for stop in source.stops()}
        self._trips = {trip.trip_id: trip for trip in source.trips()}

        self._link_routes()
        self._link_trips()
        self._load_stop_times(source.stop_times())
        self._load_shapes(source.shape_points())
        self._load_services(source.calendars(), source.calendar_dates())

        self._loaded = True
        self._log.info(
            "Loaded feed graph: agencies=%s routes=%s stops=%s trips=%s shapes=%s services=%s",
            len(self._agencies),
            len(self._routes),
            len(self._stops),
            len(self._trips),
            len(self._shapes),
            len(self._services),
        )
        return self

    def _link(self, parent: FeedNode, child: FeedNode) -> None:
        self._children.link(parent, child)
        self._parents.link(child, parent)

    def _link_routes(self) -> None:
        default_agency = next(iter(self._agencies.values()), None)
        for route in self._routes.values():
            if route.agency_id:
                agency = self._agencies.get(route.agency_id)
            else:
                agency = default_agency
            if agency is None:
                continue
            self._link(agency, route)

    def _link_trips(self) -> None:
        for trip in self._trips.values():
            route = self._routes.get(trip.route_id)
            if route is not None:
                self._link(route, trip)

    def _load_stop_times(self, stop_times: Iterable[StopTime]) -> None:
        for stop_time in stop_times:
            self._stop_times.setdefault(stop_time.trip_id, []).append(stop_time)
            self._stop_time_counts[stop_time.trip_id] += 1
            trip = self._trips.get(stop_time.trip_id)
            stop = self._stops.get(stop_time.stop_id)
            if trip is not None and stop is not None:
                self._link(trip, stop)
        for items in self._stop_times.values():
            items.sort(key=lambda stop_time: stop_time.stop_sequence)

    def _load_shapes(self, points: Iterable[ShapePoint]) -> None:
        grouped: dict[str, list[ShapePoint]] = {}
        for shape_point in points:
            grouped.setdefault(shape_point.shape_id, []).append(shape_point)
        for shape_id, items in grouped.items():
            items.sort(key=lambda shape_point: shape_point.sequence)
            if len(items) < 2:  # noqa: PLR2004
                self._log.debug("Skipping shape %s with fewer than two points", shape_id)
                continue
            self._shapes[shape_id] = geometry.line((item.lon, item.lat) for item in items)

    def _load_services(
        self, calendars: Iterable[Calendar], calendar_dates: Iterable[CalendarDate]
    ) -> None:
        for calendar in calendars:
            self._services[calendar.service_id] = ServiceDescriptor(
                service_id=calendar.service_id,
                start_date=calendar.start_date,
                end_date=calendar.end_date,
                days_of_week=calendar.days_of_week,
            )
        for exception in calendar_dates:
            service = self._services.get(exception.service_id)
            if service is None:
                service = ServiceDescriptor(service_id=exception.service_id)
                self._services[exception.service_id] = service
            service.apply_exception(exception)
        for service in self._services.values():
            service.added_dates.sort()
            service.except_dates.sort()
            if service.start_date is None and service.added_dates:
                service.start_date = service.added_dates[0]
                service.end_date = service.added_dates[-1]

    # Traversal -----------------------------------------------------------------

    def children(self, node: FeedNode, depth: int = 1) -> list[FeedNode]:
        self._require_loaded()
        return self._children.bfs(node, depth)

    def parents(self, node: FeedNode, depth: int = 1) -> list[FeedNode]:
        self._require_loaded()
        return self._parents.bfs(node, depth)

    def stops_of_route(self, route: FeedRoute) -> list[FeedStop]:
        """All stops reachable from ``route`` through its trips, deduplicated."""
        return [node for node in self.children(route, depth=2) if isinstance(node, FeedStop)]

    def trips_of_route(self, route: FeedRoute) -> list[Trip]:
        return [node for node in self.children(route) if isinstance(node, Trip)]

    def routes_of_agency(self, agency: Agency) -> list[FeedRoute]:
        return [node for node in self.children(agency) if isinstance(node, FeedRoute)]

    def agency_of_route(self, route: FeedRoute) -> Agency | None:
        return next(
            (node for node in self.parents(route) if isinstance(node, Agency)),
            None,
        )

    # Lookups -------------------------------------------------------------------

    def agencies(self) -> Iterator[Agency]:
        return iter(self._agencies.values())

    def routes(self) -> Iterator[FeedRoute]:
        return iter(self._routes.values())

    def stops(self) -> Iterator[FeedStop]:
        return iter(self._stops.values())

    def trips(self) -> Iterator[Trip]:
        return iter(self._trips.values())

    def agency(self, agency_id: str) -> Agency | None:
        return self._agencies.get(agency_id)

    def route(self, route_id: str) -> FeedRoute | None:
        return self._routes.get(route_id)

    def stop(self, stop_id: str) -> FeedStop | None:
        return self._stops.get(stop_id)

    def trip(self, trip_id: str) -> Trip | None:
        return self._trips.get(trip_id)

    def stop_times(self, trip_id: str) -> list[StopTime]:
        """Stop-times of a trip in ascending stop sequence."""
        return list(self._stop_times.get(trip_id, ()))

    def stop_time_count(self, trip_id: str) -> int:
        return self._stop_time_counts[trip_id]

    def trips_by_stop_time_count(self) -> list[Trip]:
        """Trips ordered by descending stop-time count (stable for ties)."""
        return sorted(self._trips.values(), key=lambda trip: -self._stop_time_counts[trip.trip_id])

    def shape_line(self, shape_id: str | None) -> LineString | None:
        if shape_id is None:
            return None
        return self._shapes.get(shape_id)

    def service(self, service_id: str) -> ServiceDescriptor | None:
        return self._services.get(service_id)

    def top_level_station(self, stop: FeedStop) -> FeedStop:
        """Follow ``parent_station`` up to the outermost known station."""
        seen = {stop.stop_id}
        current = stop
        while current.parent_station:
            parent = self._stops.get(current.parent_station)
            if parent is None or parent.stop_id in seen:
                break
            seen.add(parent.stop_id)
            current = parent
        return current

    def stations(self) -> dict[FeedStop, list[FeedStop]]:
        """Raw stops grouped under their top-level station (a station includes itself)."""
        groups: dict[FeedStop, list[FeedStop]] = {}
        for stop in self._stops.values():
            groups.setdefault(self.top_level_station(stop), []).append(stop)
        return groups

    def _require_loaded(self) -> None:
        if not self._loaded:
            raise FeedGraphError("Feed graph not loaded. Call load() first.")
