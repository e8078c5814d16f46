"""In-memory feed sources for feed-graph, resolver and import tests."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field

from transitgraph.domain.feed import (
    Agency,
    Calendar,
    CalendarDate,
    FeedRoute,
    FeedStop,
    OperatorInFeed,
    ShapePoint,
    StopTime,
    Trip,
)

FEED_ONESTOP_ID = "f-9q8y-metro"
OPERATOR_ONESTOP_ID = "o-9q8y-metrotransit"
OPERATORS_IN_FEED = (
    OperatorInFeed(gtfs_agency_id="A1", operator_onestop_id=OPERATOR_ONESTOP_ID),
)


@dataclass(slots=True)
class StaticFeedSource:
    agency_records: list[Agency] = field(default_factory=list[Agency])
    route_records: list[FeedRoute] = field(default_factory=list[FeedRoute])
    stop_records: list[FeedStop] = field(default_factory=list[FeedStop])
    trip_records: list[Trip] = field(default_factory=list[Trip])
    shape_point_records: list[ShapePoint] = field(default_factory=list[ShapePoint])
    stop_time_records: list[StopTime] = field(default_factory=list[StopTime])
    calendar_records: list[Calendar] = field(default_factory=list[Calendar])
    calendar_date_records: list[CalendarDate] = field(default_factory=list[CalendarDate])

    def agencies(self) -> list[Agency]:
        return list(self.agency_records)

    def routes(self) -> list[FeedRoute]:
        return list(self.route_records)

    def stops(self) -> list[FeedStop]:
        return list(self.stop_records)

    def trips(self) -> list[Trip]:
        return list(self.trip_records)

    def shape_points(self) -> list[ShapePoint]:
        return list(self.shape_point_records)

    def stop_times(self) -> list[StopTime]:
        return list(self.stop_time_records)

    def calendars(self) -> list[Calendar]:
        return list(self.calendar_records)

    def calendar_dates(self) -> list[CalendarDate]:
        return list(self.calendar_date_records)


def make_feed_source() -> StaticFeedSource:
    """One agency, one bus route, three stations (one with a platform) and two trips.

    Trip ``T1`` follows shape ``SH1`` through all three stations. Trip ``T2``
    has no shape and calls at the platform of ``S1`` and at ``S2``.
    """

    return StaticFeedSource(
        agency_records=[
            Agency(
                agency_id="A1",
                name="Metro Transit",
                url="https://metro.example.com",
                timezone="America/Los_Angeles",
            )
        ],
        route_records=[
            FeedRoute(route_id="R1", agency_id="A1", short_name="1", route_type=3, color="ff0000"),
        ],
        stop_records=[
            FeedStop(stop_id="S1", name="Main St", lat=37.7800, lon=-122.4000),
            FeedStop(
                stop_id="S1a",
                name="Main St Platform A",
                lat=37.7801,
                lon=-122.4001,
                parent_station="S1",
            ),
            FeedStop(stop_id="S2", name="Market St", lat=37.7870, lon=-122.4050),
            FeedStop(stop_id="S3", name="Civic Center", lat=37.7900, lon=-122.4100),
        ],
        trip_records=[
            Trip(trip_id="T1", route_id="R1", service_id="WK", shape_id="SH1", headsign="Civic"),
            Trip(trip_id="T2", route_id="R1", service_id="WK"),
        ],
        shape_point_records=[
            ShapePoint(shape_id="SH1", lat=37.7900, lon=-122.4100, sequence=3),
            ShapePoint(shape_id="SH1", lat=37.7800, lon=-122.4000, sequence=1),
            ShapePoint(shape_id="SH1", lat=37.7870, lon=-122.4050, sequence=2),
        ],
        stop_time_records=[
            StopTime(
                trip_id="T1",
                stop_id="S2",
                stop_sequence=2,
                arrival_time="08:05:00",
                departure_time="08:05:00",
            ),
            StopTime(
                trip_id="T1",
                stop_id="S1",
                stop_sequence=1,
                arrival_time="08:00:00",
                departure_time="08:00:00",
            ),
            StopTime(
                trip_id="T1",
                stop_id="S3",
                stop_sequence=3,
                arrival_time="08:10:00",
                departure_time="08:10:00",
            ),
            StopTime(
                trip_id="T2",
                stop_id="S1a",
                stop_sequence=1,
                arrival_time="09:00:00",
                departure_time="09:00:00",
            ),
            StopTime(
                trip_id="T2",
                stop_id="S2",
                stop_sequence=2,
                arrival_time="09:05:00",
                departure_time="09:05:00",
            ),
        ],
        calendar_records=[
            Calendar(
                service_id="WK",
                monday=True,
                tuesday=True,
                wednesday=True,
                thursday=True,
                friday=True,
                saturday=False,
                sunday=False,
                start_date=dt.date(2024, 1, 1),
                end_date=dt.date(2024, 12, 31),
            )
        ],
        calendar_date_records=[
            CalendarDate(service_id="WK", date=dt.date(2024, 7, 4), exception_type=2),
        ],
    )
