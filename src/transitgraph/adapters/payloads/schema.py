"""Pydantic models describing the JSON change payload.

A payload looks like::

    {"changes": [{"action": "createUpdate",
                  "stop": {"onestopId": "s-...", "name": "A", "geometry": {...}},
                  "issuesResolved": [12]}]}

Every change names exactly one entity kind. Field names are camel-cased on the
wire; geometries are GeoJSON objects or WKT strings.
"""

from __future__ import annotations

from datetime import date  # noqa: TC003
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from transitgraph.domain import geometry as geometry_codec
from transitgraph.domain.model import ChangeAction, EntityType, VehicleType

type GeometryValue = dict[str, Any] | str


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class PayloadBaseModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class CanonicalPayload(PayloadBaseModel):
    onestop_id: str
    name: str | None = None
    geometry: GeometryValue | None = None
    tags: dict[str, str] | None = None
    identified_by: list[str] = Field(default_factory=list[str])
    imported_from_feed_onestop_id: str | None = None

    @field_validator("geometry")
    @classmethod
    def _check_geometry(cls, value: GeometryValue | None) -> GeometryValue | None:
        if value is not None:
            geometry_codec.from_any(value)
        return value

    _normalize_name = field_validator("name", mode="before")(_blank_to_none)


class OperatorPayload(CanonicalPayload):
    short_name: str | None = None
    website: str | None = None
    timezone: str | None = None
    country: str | None = None
    state: str | None = None
    metro: str | None = None
    serves: list[str] = Field(default_factory=list[str])
    does_not_serve: list[str] = Field(default_factory=list[str])


class StopPayload(CanonicalPayload):
    timezone: str | None = None
    wheelchair_boarding: bool | None = None
    served_by: list[str] = Field(default_factory=list[str])
    not_served_by: list[str] = Field(default_factory=list[str])


class RoutePayload(CanonicalPayload):
    vehicle_type: VehicleType | None = None
    color: str | None = None
    operated_by: str | None = None
    serves: list[str] = Field(default_factory=list[str])
    does_not_serve: list[str] = Field(default_factory=list[str])

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def _parse_route_type(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return VehicleType.from_route_type(value)
        if isinstance(value, str):
            return value.strip().lower() or None
        return value


class RouteStopPatternPayload(CanonicalPayload):
    stop_pattern: list[str] | None = None
    is_generated: bool | None = None
    trips: list[str] | None = None
    traversed_by: str | None = None


class ScheduleStopPairPayload(PayloadBaseModel):
    imported_from_feed_onestop_id: str | None = None
    trip: str
    origin_onestop_id: str
    origin_departure_time: str | None = None

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
    wheelchair_accessible: int | None = None
    bikes_allowed: int | None = None
    pickup_type: int | None = None
    drop_off_type: int | None = None
    origin_dist_traveled: float | None = None
    destination_dist_traveled: float | None = None
    service_start_date: date | None = None
    service_end_date: date | None = None
    service_days_of_week: list[bool] | None = None
    service_added_dates: list[date] | None = None
    service_except_dates: list[date] | None = None

    @field_validator("service_days_of_week")
    @classmethod
    def _check_week(cls, value: list[bool] | None) -> list[bool] | None:
        if value is not None and len(value) != 7:  # noqa: PLR2004
            raise ValueError("serviceDaysOfWeek needs exactly 7 flags")
        return value


type EntityPayload = (
    OperatorPayload | StopPayload | RoutePayload | RouteStopPatternPayload | ScheduleStopPairPayload
)

PAYLOAD_MODELS: dict[EntityType, type[PayloadBaseModel]] = {
    EntityType.OPERATOR: OperatorPayload,
    EntityType.STOP: StopPayload,
    EntityType.ROUTE: RoutePayload,
    EntityType.ROUTE_STOP_PATTERN: RouteStopPatternPayload,
    EntityType.SCHEDULE_STOP_PAIR: ScheduleStopPairPayload,
}


class ChangeEntry(PayloadBaseModel):
    action: ChangeAction
    operator: OperatorPayload | None = None
    stop: StopPayload | None = None
    route: RoutePayload | None = None
    route_stop_pattern: RouteStopPatternPayload | None = None
    schedule_stop_pair: ScheduleStopPairPayload | None = None
    issues_resolved: list[int] = Field(default_factory=list[int])

    @model_validator(mode="after")
    def _exactly_one_entity(self) -> Self:
        present = [entity_type for entity_type in EntityType if getattr(self, entity_type.value)]
        if len(present) != 1:
            raise ValueError(
                "A change must name exactly one of: "
                + ", ".join(entity_type.payload_key for entity_type in EntityType)
            )
        return self

    @property
    def entity_type(self) -> EntityType:
        return next(entity_type for entity_type in EntityType if getattr(self, entity_type.value))

    @property
    def entity(self) -> EntityPayload:
        return getattr(self, self.entity_type.value)


class ChangePayloadDocument(PayloadBaseModel):
    changes: list[ChangeEntry]

    @model_validator(mode="before")
    @classmethod
    def _accept_bare_list(cls, value: object) -> object:
        if isinstance(value, list):
            return {"changes": value}
        return value
