"""Raw GTFS feed records as yielded by a feed source.

Records are immutable within a run and keyed by their feed-local ids.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import datetime as dt


@dataclass(frozen=True, slots=True, kw_only=True)
class Agency:
    agency_id: str
    name: str
    url: str | None = None
    timezone: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class FeedRoute:
    route_id: str
    agency_id: str | None = None
    short_name: str | None = None
    long_name: str | None = None
    route_type: int | None = None
    color: str | None = None

    @property
    def name(self) -> str | None:
        return self.short_name or self.long_name


@dataclass(frozen=True, slots=True, kw_only=True)
class FeedStop:
    stop_id: str
    name: str
    lat: float
    lon: float
    parent_station: str | None = None
    timezone: str | None = None
    wheelchair_boarding: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Trip:
    trip_id: str
    route_id: str
    service_id: str
    shape_id: str | None = None
    headsign: str | None = None
    short_name: str | None = None
    wheelchair_accessible: int | None = None
    bikes_allowed: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ShapePoint:
    shape_id: str
    lat: float
    lon: float
    sequence: int
    dist_traveled: float | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class StopTime:
    trip_id: str
    stop_id: str
    stop_sequence: int
    arrival_time: str | None = None
    departure_time: str | None = None
    stop_headsign: str | None = None
    pickup_type: int | None = None
    drop_off_type: int | None = None
    shape_dist_traveled: float | None = None
    timepoint: int | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class Calendar:
    service_id: str
    monday: bool
    tuesday: bool
    wednesday: bool
    thursday: bool
    friday: bool
    saturday: bool
    sunday: bool
    start_date: dt.date
    end_date: dt.date

    @property
    def days_of_week(self) -> tuple[bool, ...]:
        return (
            self.monday,
            self.tuesday,
            self.wednesday,
            self.thursday,
            self.friday,
            self.saturday,
            self.sunday,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class CalendarDate:
    service_id: str
    date: dt.date
    exception_type: int

    @property
    def is_added(self) -> bool:
        return self.exception_type == 1


@dataclass(frozen=True, slots=True, kw_only=True)
class OperatorInFeed:
    """External declaration mapping a feed agency to an operator onestop id."""

    gtfs_agency_id: str
    operator_onestop_id: str


type FeedNode = Agency | FeedRoute | Trip | FeedStop
