from __future__ import annotations

from shapely.geometry import MultiLineString, Polygon

from transitgraph.config import ImportConfig
from transitgraph.domain import geometry, onestop_id
from transitgraph.domain.feed import (
    Agency,
    FeedGraph,
    FeedRoute,
    FeedStop,
    OperatorInFeed,
    StopTime,
    Trip,
)
from transitgraph.domain.model import Operator, Stop, VehicleType
from transitgraph.domain.resolution import EntityResolver, ResolvedFeed
from tests.helpers.feeds import (
    FEED_ONESTOP_ID,
    OPERATOR_ONESTOP_ID,
    OPERATORS_IN_FEED,
    StaticFeedSource,
)
from tests.helpers.repositories import (
    InMemoryOperatorRepository,
    InMemoryRouteRepository,
    InMemoryStopRepository,
)


def _resolve(
    source: StaticFeedSource,
    *,
    stops: InMemoryStopRepository | None = None,
    routes: InMemoryRouteRepository | None = None,
    operators: InMemoryOperatorRepository | None = None,
) -> ResolvedFeed:
    return EntityResolver(
        FeedGraph(source).load(),
        feed_onestop_id=FEED_ONESTOP_ID,
        operators_in_feed=OPERATORS_IN_FEED,
        stops=stops or InMemoryStopRepository(),
        routes=routes or InMemoryRouteRepository(),
        operators=operators or InMemoryOperatorRepository(),
        config=ImportConfig(),
    ).resolve()


def test_resolves_operator_routes_and_stations(feed_source: StaticFeedSource) -> None:
    resolved = _resolve(feed_source)

    assert [operator.onestop_id for operator in resolved.operators] == [OPERATOR_ONESTOP_ID]
    assert sorted(stop.name or "" for stop in resolved.stops()) == [
        "Civic Center",
        "Main St",
        "Market St",
    ]
    (route,) = resolved.routes()
    assert route.name == "1"
    assert route.vehicle_type is VehicleType.BUS
    assert route.color == "FF0000"
    assert route.tags == {"route_type": "3"}
    assert route.onestop_id.startswith("r-9q8")
    assert route.onestop_id.endswith("-1")
    assert isinstance(route.geometry, MultiLineString)


def test_platforms_share_their_station_stop(feed_source: StaticFeedSource) -> None:
    resolved = _resolve(feed_source)
    graph = FeedGraph(feed_source).load()
    station = graph.stop("S1")
    platform = graph.stop("S1a")
    assert station is not None
    assert platform is not None

    stop = resolved.stop_for(station)

    assert stop is not None
    assert resolved.stop_for(platform) is stop
    assert stop.onestop_id == onestop_id.stop_onestop_id(geometry.point(-122.4, 37.78), "Main St")
    assert stop.identifiers == (
        f"gtfs://{FEED_ONESTOP_ID}/s/S1",
        f"gtfs://{FEED_ONESTOP_ID}/s/S1a",
    )
    assert stop.timezone == "America/Los_Angeles"


def test_operator_serves_routes_and_stops(feed_source: StaticFeedSource) -> None:
    resolved = _resolve(feed_source)
    (operator,) = resolved.operators
    (route,) = resolved.routes()

    assert resolved.operators_of(route) == [operator]
    assert set(resolved.stops_of(operator)) == set(resolved.stops())
    assert isinstance(operator.geometry, Polygon)
    assert operator.website == "https://metro.example.com"
    assert operator.identifiers == (f"gtfs://{FEED_ONESTOP_ID}/o/A1",)


def test_resolving_twice_yields_identical_onestop_ids(feed_source: StaticFeedSource) -> None:
    first = _resolve(feed_source)
    second = _resolve(feed_source)

    assert [stop.onestop_id for stop in first.stops()] == [
        stop.onestop_id for stop in second.stops()
    ]
    assert [route.onestop_id for route in first.routes()] == [
        route.onestop_id for route in second.routes()
    ]
    assert [item.onestop_id for item in first.operators] == [
        item.onestop_id for item in second.operators
    ]


def test_similar_stored_stop_is_adopted_without_mutation(feed_source: StaticFeedSource) -> None:
    stored = Stop(
        onestop_id="s-9q8yyzzzzz-mainstreet",
        name="Main Street",
        geometry=geometry.point(-122.40005, 37.78005),
    )
    resolved = _resolve(feed_source, stops=InMemoryStopRepository(stored))

    (adopted,) = [stop for stop in resolved.stops() if stop.onestop_id == stored.onestop_id]

    assert adopted.name == "Main Street"
    assert adopted is not stored
    assert adopted.id == stored.id
    assert stored.identifiers == ()
    assert f"gtfs://{FEED_ONESTOP_ID}/s/S1" in adopted.identifiers


def test_distant_stop_with_same_name_is_not_matched(feed_source: StaticFeedSource) -> None:
    stored = Stop(
        onestop_id="s-9q9zzzzzzz-mainst",
        name="Main St",
        geometry=geometry.point(-122.0, 38.5),
    )
    resolved = _resolve(feed_source, stops=InMemoryStopRepository(stored))

    assert all(stop.onestop_id != stored.onestop_id for stop in resolved.stops())


def test_stored_operator_is_found_by_declared_onestop_id(feed_source: StaticFeedSource) -> None:
    stored = Operator(onestop_id=OPERATOR_ONESTOP_ID, name="Metro Transit Authority")
    resolved = _resolve(feed_source, operators=InMemoryOperatorRepository(stored))

    (operator,) = resolved.operators

    assert operator is not stored
    assert operator.id == stored.id
    assert operator.name == "Metro Transit Authority"


def test_unknown_declared_agency_is_skipped(feed_source: StaticFeedSource) -> None:
    graph = FeedGraph(feed_source).load()
    resolved = EntityResolver(
        graph,
        feed_onestop_id=FEED_ONESTOP_ID,
        operators_in_feed=[OperatorInFeed(gtfs_agency_id="ZZ", operator_onestop_id="o-x-y")],
        stops=InMemoryStopRepository(),
        routes=InMemoryRouteRepository(),
        operators=InMemoryOperatorRepository(),
    ).resolve()

    assert resolved.operators == []
    assert resolved.routes() == []


def test_stored_stop_is_found_by_onestop_id_when_names_differ(
    feed_source: StaticFeedSource,
) -> None:
    derived = onestop_id.stop_onestop_id(geometry.point(-122.4, 37.78), "Main St")
    stored = Stop(onestop_id=derived, name="Hauptstrasse", geometry=geometry.point(-122.0, 38.5))
    resolved = _resolve(feed_source, stops=InMemoryStopRepository(stored))

    (adopted,) = [stop for stop in resolved.stops() if stop.onestop_id == derived]

    assert adopted is not stored
    assert adopted.id == stored.id
    assert adopted.name == "Hauptstrasse"
    assert stored.identifiers == ()
    assert f"gtfs://{FEED_ONESTOP_ID}/s/S1" in adopted.identifiers
    assert len(resolved.stops()) == 3


def _tokyo_feed_source() -> StaticFeedSource:
    stop_times: list[StopTime] = []
    for trip_id in ("T1", "T2"):
        stop_times.append(StopTime(trip_id=trip_id, stop_id="TYO", stop_sequence=1))
        stop_times.append(StopTime(trip_id=trip_id, stop_id="KND", stop_sequence=2))
    return StaticFeedSource(
        agency_records=[Agency(agency_id="A1", name="JR東日本", timezone="Asia/Tokyo")],
        route_records=[
            FeedRoute(route_id="R1", agency_id="A1", long_name="山手線", route_type=2),
            FeedRoute(route_id="R2", agency_id="A1", long_name="中央線", route_type=2),
        ],
        stop_records=[
            FeedStop(stop_id="TYO", name="東京", lat=35.6812, lon=139.7671),
            FeedStop(stop_id="KND", name="神田", lat=35.6918, lon=139.7709),
        ],
        trip_records=[
            Trip(trip_id="T1", route_id="R1", service_id="WK"),
            Trip(trip_id="T2", route_id="R2", service_id="WK"),
        ],
        stop_time_records=stop_times,
    )


def test_routes_with_non_latin_names_keep_separate_identities() -> None:
    resolved = _resolve(_tokyo_feed_source())

    routes = resolved.routes()

    assert sorted(route.name or "" for route in routes) == ["中央線", "山手線"]
    assert len({route.onestop_id for route in routes}) == 2
    assert all(route.onestop_id.endswith(route.name or "") for route in routes)
    assert sorted(stop.onestop_id.rsplit("-", 1)[1] for stop in resolved.stops()) == [
        "東京",
        "神田",
    ]
