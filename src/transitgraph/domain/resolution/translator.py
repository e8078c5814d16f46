"""Translate raw feed records into canonical entities with derived onestop ids."""

from __future__ import annotations

from typing import TYPE_CHECKING

from transitgraph.domain import geometry, onestop_id
from transitgraph.domain.model import Operator, Route, Stop, VehicleType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from transitgraph.domain.feed import Agency, FeedRoute, FeedStop


def _wheelchair_boarding(value: int | None) -> bool | None:
    if value == 1:
        return True
    if value == 2:  # noqa: PLR2004
        return False
    return None


def stop_from_feed(
    station: FeedStop, *, feed_onestop_id: str, default_timezone: str | None = None
) -> Stop:
    location = geometry.point(station.lon, station.lat)
    return Stop(
        onestop_id=onestop_id.stop_onestop_id(location, station.name),
        name=station.name,
        geometry=location,
        timezone=station.timezone or default_timezone,
        wheelchair_boarding=_wheelchair_boarding(station.wheelchair_boarding),
        imported_from_feed_onestop_id=feed_onestop_id,
    )


def route_from_feed(route: FeedRoute, stops: Sequence[Stop], *, feed_onestop_id: str) -> Route:
    locations = [stop.geometry.centroid for stop in stops if stop.geometry is not None]
    tags: dict[str, str] = {}
    if route.long_name and route.long_name != route.name:
        tags["route_long_name"] = route.long_name
    if route.route_type is not None:
        tags["route_type"] = str(route.route_type)
    return Route(
        onestop_id=onestop_id.route_onestop_id(locations, route.name),
        name=route.name,
        vehicle_type=VehicleType.from_route_type(route.route_type),
        color=route.color.upper() if route.color else None,
        tags=tags,
        imported_from_feed_onestop_id=feed_onestop_id,
    )


def operator_from_feed(
    agency: Agency,
    stops: Sequence[Stop],
    *,
    declared_onestop_id: str,
    feed_onestop_id: str,
) -> Operator:
    """Build an operator for ``agency``.

    The declared onestop id always wins over one derived from geometry and name.
    """

    locations = [stop.geometry.centroid for stop in stops if stop.geometry is not None]
    return Operator(
        onestop_id=declared_onestop_id,
        name=agency.name,
        geometry=geometry.convex_hull(locations),
        website=agency.url,
        timezone=agency.timezone,
        imported_from_feed_onestop_id=feed_onestop_id,
    )
