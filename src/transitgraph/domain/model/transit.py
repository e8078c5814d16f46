"""Canonical transit entities and the scheduled edges between stops."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from transitgraph.domain.model.entity import CanonicalEntity, Entity
from transitgraph.domain.model.enums import EntityType, VehicleType

if TYPE_CHECKING:
    from datetime import date, datetime


@dataclass(eq=False, kw_only=True)
class Operator(CanonicalEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.OPERATOR
    STICKY_ATTRIBUTES: ClassVar[frozenset[str]] = frozenset(
        {"name", "short_name", "website", "country", "state", "metro", "timezone"}
    )
    ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        *CanonicalEntity.ATTRIBUTES,
        "short_name",
        "website",
        "timezone",
        "country",
        "state",
        "metro",
    )

    short_name: str | None = None
    website: str | None = None
    timezone: str | None = None
    country: str | None = None
    state: str | None = None
    metro: str | None = None


@dataclass(eq=False, kw_only=True)
class Stop(CanonicalEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.STOP
    STICKY_ATTRIBUTES: ClassVar[frozenset[str]] = frozenset(
        {"name", "geometry", "timezone", "wheelchair_boarding"}
    )
    ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        *CanonicalEntity.ATTRIBUTES,
        "timezone",
        "wheelchair_boarding",
    )

    timezone: str | None = None
    wheelchair_boarding: bool | None = None


@dataclass(eq=False, kw_only=True)
class Route(CanonicalEntity):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ROUTE
    STICKY_ATTRIBUTES: ClassVar[frozenset[str]] = frozenset({"name", "color", "vehicle_type"})
    ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        *CanonicalEntity.ATTRIBUTES,
        "vehicle_type",
        "color",
    )

    vehicle_type: VehicleType | None = None
    color: str | None = None
    operated_by_onestop_id: str | None = None


@dataclass(eq=False, kw_only=True)
class RouteStopPattern(CanonicalEntity):
    """Ordered stop sequence plus line geometry for one variant of a route.

    ``stop_distances`` holds one cumulative distance in meters per stop in
    ``stop_pattern`` (``None`` where the stop could not be placed on the line).
    It is derived from the line and the stop geometries and never assigned by
    a change directly.
    """

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ROUTE_STOP_PATTERN
    ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        *CanonicalEntity.ATTRIBUTES,
        "stop_pattern",
        "is_generated",
        "trips",
    )

    route_onestop_id: str | None = None
    stop_pattern: list[str] = field(default_factory=list[str])
    stop_distances: list[float | None] = field(default_factory=list["float | None"])
    is_generated: bool = False
    trips: list[str] = field(default_factory=list[str])


@dataclass(eq=False, kw_only=True)
class ScheduleStopPair(Entity):
    """One scheduled hop of a trip between two consecutive stops."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SCHEDULE_STOP_PAIR
    KEY_ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        "imported_from_feed_onestop_id",
        "trip",
        "origin_onestop_id",
        "origin_departure_time",
    )
    ATTRIBUTES: ClassVar[tuple[str, ...]] = (
        "destination_onestop_id",
        "route_onestop_id",
        "route_stop_pattern_onestop_id",
        "operator_onestop_id",
        "origin_timezone",
        "destination_timezone",
        "origin_arrival_time",
        "destination_arrival_time",
        "destination_departure_time",
        "trip_headsign",
        "trip_short_name",
        "wheelchair_accessible",
        "bikes_allowed",
        "pickup_type",
        "drop_off_type",
        "origin_dist_traveled",
        "destination_dist_traveled",
        "service_start_date",
        "service_end_date",
        "service_days_of_week",
        "service_added_dates",
        "service_except_dates",
    )

    trip: str
    origin_onestop_id: str
    origin_departure_time: str | None = None
    imported_from_feed_onestop_id: str | None = None

    destination_onestop_id: str | None = None
    route_onestop_id: str | None = None
    route_stop_pattern_onestop_id: str | None = None
    operator_onestop_id: str | None = None
    origin_timezone: str | None = None
    destination_timezone: str | None = None
    origin_arrival_time: str | None = None
    destination_arrival_time: str | None = None
    destination_departure_time: str | None = None
    trip_headsign: str | None = None
    trip_short_name: str | None = None
    wheelchair_accessible: int = 0
    bikes_allowed: int = 0
    pickup_type: int = 0
    drop_off_type: int = 0
    origin_dist_traveled: float | None = None
    destination_dist_traveled: float | None = None
    service_start_date: date | None = None
    service_end_date: date | None = None
    service_days_of_week: list[bool] = field(default_factory=lambda: [False] * 7)
    service_added_dates: list[date] = field(default_factory=list["date"])
    service_except_dates: list[date] = field(default_factory=list["date"])

    created_or_updated_in_changeset_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def key(self) -> tuple[str | None, str, str, str | None]:
        return (
            self.imported_from_feed_onestop_id,
            self.trip,
            self.origin_onestop_id,
            self.origin_departure_time,
        )

    @property
    def referenced_stops(self) -> tuple[str, ...]:
        stops = [self.origin_onestop_id]
        if self.destination_onestop_id is not None:
            stops.append(self.destination_onestop_id)
        return tuple(stops)


type TransitEntity = Operator | Route | Stop | RouteStopPattern

CLASS_BY_ENTITY_TYPE: dict[EntityType, type[TransitEntity]] = {
    EntityType.OPERATOR: Operator,
    EntityType.ROUTE: Route,
    EntityType.STOP: Stop,
    EntityType.ROUTE_STOP_PATTERN: RouteStopPattern,
}
