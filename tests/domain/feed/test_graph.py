from __future__ import annotations

import datetime as dt

import pytest
from shapely.geometry import LineString

from transitgraph.domain.feed import (
    AdjacencyMap,
    CalendarDate,
    FeedGraph,
    FeedGraphError,
    FeedRoute,
    FeedStop,
    ShapePoint,
    StopTime,
    Trip,
)
from tests.helpers.feeds import StaticFeedSource, make_feed_source


def test_graph_requires_load_before_traversal(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source)
    route = feed_source.route_records[0]

    with pytest.raises(FeedGraphError):
        graph.children(route)


def test_graph_links_agency_routes_trips_and_stops(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source).load()
    agency = graph.agency("A1")
    route = graph.route("R1")
    assert agency is not None
    assert route is not None

    assert graph.routes_of_agency(agency) == [route]
    assert graph.agency_of_route(route) is agency
    assert [trip.trip_id for trip in graph.trips_of_route(route)] == ["T1", "T2"]
    assert sorted(stop.stop_id for stop in graph.stops_of_route(route)) == ["S1", "S1a", "S2", "S3"]


def test_stop_times_are_sorted_and_counted(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source).load()

    assert [item.stop_id for item in graph.stop_times("T1")] == ["S1", "S2", "S3"]
    assert graph.stop_time_count("T1") == 3
    assert graph.stop_time_count("missing") == 0
    assert [trip.trip_id for trip in graph.trips_by_stop_time_count()] == ["T1", "T2"]


def test_shapes_become_ordered_lines(feed_source: StaticFeedSource) -> None:
    feed_source.shape_point_records.append(
        ShapePoint(shape_id="SOLO", lat=1.0, lon=1.0, sequence=1)
    )
    graph = FeedGraph(feed_source).load()

    shape = graph.shape_line("SH1")
    assert isinstance(shape, LineString)
    assert list(shape.coords)[0] == (-122.4, 37.78)
    assert graph.shape_line("SOLO") is None
    assert graph.shape_line(None) is None


def test_services_merge_calendars_and_exceptions(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source).load()

    service = graph.service("WK")

    assert service is not None
    assert service.start_date == dt.date(2024, 1, 1)
    assert service.days_of_week == (True, True, True, True, True, False, False)
    assert service.except_dates == [dt.date(2024, 7, 4)]
    assert service.added_dates == []


def test_services_from_calendar_dates_only() -> None:
    source = StaticFeedSource(
        calendar_date_records=[
            CalendarDate(service_id="X", date=dt.date(2024, 5, 2), exception_type=1),
            CalendarDate(service_id="X", date=dt.date(2024, 5, 1), exception_type=1),
        ]
    )
    graph = FeedGraph(source).load()

    service = graph.service("X")

    assert service is not None
    assert service.added_dates == [dt.date(2024, 5, 1), dt.date(2024, 5, 2)]
    assert service.start_date == dt.date(2024, 5, 1)
    assert service.end_date == dt.date(2024, 5, 2)


def test_stations_group_platforms_under_parent(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source).load()

    stations = {
        station.stop_id: [member.stop_id for member in members]
        for station, members in graph.stations().items()
    }

    assert stations == {"S1": ["S1", "S1a"], "S2": ["S2"], "S3": ["S3"]}


def test_dangling_references_are_left_out() -> None:
    source = make_feed_source()
    source.route_records.append(FeedRoute(route_id="R9", agency_id="NOPE", short_name="9"))
    source.trip_records.append(Trip(trip_id="T9", route_id="MISSING", service_id="WK"))
    source.stop_time_records.append(
        StopTime(trip_id="T1", stop_id="GHOST", stop_sequence=4, departure_time="08:20:00")
    )
    graph = FeedGraph(source).load()
    orphan = graph.route("R9")
    assert orphan is not None

    assert graph.agency_of_route(orphan) is None
    stray_trip = graph.trip("T9")
    trip = graph.trip("T1")
    assert stray_trip is not None
    assert trip is not None
    assert graph.parents(stray_trip) == []
    assert graph.stop_time_count("T1") == 4
    assert all(isinstance(node, FeedStop) for node in graph.children(trip))


def test_routes_without_agency_id_use_the_only_agency(feed_source: StaticFeedSource) -> None:
    feed_source.route_records.append(FeedRoute(route_id="R2", short_name="2"))
    graph = FeedGraph(feed_source).load()
    route = graph.route("R2")
    assert route is not None

    agency = graph.agency_of_route(route)

    assert agency is not None
    assert agency.agency_id == "A1"


def test_adjacency_map_bfs_visits_each_node_once() -> None:
    graph: AdjacencyMap[str] = AdjacencyMap()
    graph.link("a", "b")
    graph.link("a", "c")
    graph.link("b", "c")
    graph.link("c", "a")
    graph.link("c", "d")

    assert graph.bfs("a") == ["b", "c"]
    assert graph.bfs("a", depth=2) == ["b", "c", "d"]
    assert graph.bfs("a", depth=0) == []
    assert graph.neighbours("zzz") == ()
    assert "a" in graph
    assert len(graph) == 3
