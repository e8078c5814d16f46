from __future__ import annotations

import datetime as dt

from shapely.geometry import LineString

from transitgraph.config import ImportConfig
from transitgraph.domain.changesets import ChangesetEmitter
from transitgraph.domain.feed import FeedGraph
from transitgraph.domain.model import (
    ChangeAction,
    EntityChange,
    EntityType,
    OperatorChange,
    RouteChange,
    RouteStopPatternChange,
    ScheduleStopPairChange,
    StopChange,
)
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


def _emit(source: StaticFeedSource, config: ImportConfig | None = None) -> list[list[EntityChange]]:
    graph = FeedGraph(source).load()
    resolved: ResolvedFeed = EntityResolver(
        graph,
        feed_onestop_id=FEED_ONESTOP_ID,
        operators_in_feed=OPERATORS_IN_FEED,
        stops=InMemoryStopRepository(),
        routes=InMemoryRouteRepository(),
        operators=InMemoryOperatorRepository(),
    ).resolve()
    return list(ChangesetEmitter(graph, resolved, config=config).emit())


def _flatten[TChange: EntityChange](
    batches: list[list[EntityChange]], kind: type[TChange]
) -> list[TChange]:
    return [change for batch in batches for change in batch if isinstance(change, kind)]


def test_batches_come_out_in_dependency_order(feed_source: StaticFeedSource) -> None:
    batches = _emit(feed_source)

    kinds = [{change.entity_type for change in batch} for batch in batches]

    assert kinds == [
        {EntityType.OPERATOR},
        {EntityType.STOP},
        {EntityType.ROUTE},
        {EntityType.ROUTE_STOP_PATTERN},
        {EntityType.SCHEDULE_STOP_PAIR},
    ]
    assert all(
        change.action is ChangeAction.CREATE_UPDATE for batch in batches for change in batch
    )


def test_entity_batches_respect_chunk_size(feed_source: StaticFeedSource) -> None:
    batches = _emit(feed_source, ImportConfig(chunk_size=2))

    stop_batches = [batch for batch in batches if isinstance(batch[0], StopChange)]

    assert [len(batch) for batch in stop_batches] == [2, 1]


def test_canonical_changes_carry_provenance(feed_source: StaticFeedSource) -> None:
    batches = _emit(feed_source)

    (operator,) = _flatten(batches, OperatorChange)
    (route,) = _flatten(batches, RouteChange)
    stops = _flatten(batches, StopChange)

    assert operator.onestop_id == OPERATOR_ONESTOP_ID
    assert operator.attributes["website"] == "https://metro.example.com"
    assert operator.identified_by == (f"gtfs://{FEED_ONESTOP_ID}/o/A1",)
    assert all(stop.imported_from_feed_onestop_id == FEED_ONESTOP_ID for stop in stops)
    assert route.operated_by == OPERATOR_ONESTOP_ID
    assert set(route.serves) == {stop.onestop_id for stop in stops}
    assert "geometry" in route.attributes


def test_route_stop_patterns_split_shaped_and_generated_trips(
    feed_source: StaticFeedSource,
) -> None:
    batches = _emit(feed_source)
    (route,) = _flatten(batches, RouteChange)

    patterns = {
        tuple(change.attributes["trips"]): change
        for change in _flatten(batches, RouteStopPatternChange)
    }

    assert set(patterns) == {("T1",), ("T2",)}
    shaped, generated = patterns[("T1",)], patterns[("T2",)]
    assert shaped.attributes["is_generated"] is False
    assert generated.attributes["is_generated"] is True
    assert len(shaped.attributes["stop_pattern"]) == 3
    assert len(generated.attributes["stop_pattern"]) == 2
    assert isinstance(generated.attributes["geometry"], LineString)
    assert shaped.traversed_by == route.onestop_id
    assert shaped.onestop_id.startswith(f"{route.onestop_id}-")
    assert shaped.onestop_id != generated.onestop_id


def test_schedule_stop_pairs_follow_consecutive_stop_times(
    feed_source: StaticFeedSource,
) -> None:
    batches = _emit(feed_source)
    patterns = {
        tuple(change.attributes["trips"]): change
        for change in _flatten(batches, RouteStopPatternChange)
    }

    pairs = _flatten(batches, ScheduleStopPairChange)

    assert [pair.attributes["trip"] for pair in pairs] == ["T1", "T1", "T2"]
    first = pairs[0].attributes
    stop_pattern = patterns[("T1",)].attributes["stop_pattern"]
    assert first["origin_onestop_id"] == stop_pattern[0]
    assert first["destination_onestop_id"] == stop_pattern[1]
    assert first["origin_departure_time"] == "08:00:00"
    assert first["destination_arrival_time"] == "08:05:00"
    assert first["route_stop_pattern_onestop_id"] == patterns[("T1",)].onestop_id
    assert first["operator_onestop_id"] == OPERATOR_ONESTOP_ID
    assert first["trip_headsign"] == "Civic"
    assert first["imported_from_feed_onestop_id"] == FEED_ONESTOP_ID
    assert first["service_start_date"] == dt.date(2024, 1, 1)
    assert first["service_days_of_week"] == [True, True, True, True, True, False, False]
    assert first["service_except_dates"] == [dt.date(2024, 7, 4)]
    assert pairs[2].key == (FEED_ONESTOP_ID, "T2", stop_pattern[0], "09:00:00")


def test_schedule_stop_pairs_are_batched_by_stop_time_count(
    feed_source: StaticFeedSource,
) -> None:
    batches = _emit(feed_source, ImportConfig(stop_time_batch_size=2))

    pair_batches = [
        [change.attributes["trip"] for change in batch]
        for batch in batches
        if isinstance(batch[0], ScheduleStopPairChange)
    ]

    assert pair_batches == [["T1", "T1"], ["T2"]]


def test_empty_resolution_emits_nothing() -> None:
    assert _emit(StaticFeedSource()) == []
