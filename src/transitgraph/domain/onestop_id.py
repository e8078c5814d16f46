"""Onestop ids: deterministic, geography-derived semantic identifiers.

A onestop id has the form ``<prefix>-<geohash>-<name>``:

* stops use a 10-character geohash of their own location,
* routes and operators use the longest geohash prefix shared by the stops they serve,
* route stop patterns append hashes of their stop sequence and line to the route id.
"""

from __future__ import annotations

import hashlib
import os
import re
import unicodedata
from typing import TYPE_CHECKING, Final

from transitgraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shapely.geometry import Point

_BASE32: Final[str] = "0123456789bcdefghjkmnpqrstuvwxyz"
_NAME_FILTER: Final[re.Pattern[str]] = re.compile(r"[^\w~@<>]|_")
STOP_GEOHASH_PRECISION: Final[int] = 10
PATTERN_HASH_LENGTH: Final[int] = 6

PREFIXES: Final[dict[EntityType, str]] = {
    EntityType.OPERATOR: "o",
    EntityType.ROUTE: "r",
    EntityType.STOP: "s",
}


def geohash(lon: float, lat: float, precision: int = STOP_GEOHASH_PRECISION) -> str:
    lat_range = [-90.0, 90.0]
    lon_range = [-180.0, 180.0]
    chars: list[str] = []
    bits = 0
    bit_count = 0
    even = True
    while len(chars) < precision:
        interval, value = (lon_range, lon) if even else (lat_range, lat)
        mid = (interval[0] + interval[1]) / 2
        if value >= mid:
            bits = (bits << 1) | 1
            interval[0] = mid
        else:
            bits <<= 1
            interval[1] = mid
        even = not even
        bit_count += 1
        if bit_count == 5:  # noqa: PLR2004
            chars.append(_BASE32[bits])
            bits = 0
            bit_count = 0
    return "".join(chars)


def common_geohash(points: Sequence[Point], precision: int = STOP_GEOHASH_PRECISION) -> str:
    if not points:
        raise ValueError("Cannot derive a geohash without points")
    hashes = [geohash(p.x, p.y, precision) for p in points]
    prefix = os.path.commonprefix(hashes)
    # points on either side of a cell boundary share nothing; fall back to one cell
    return prefix or hashes[0][:1]


def name_component(name: str | None) -> str:
    text = unicodedata.normalize("NFKC", name or "").casefold()
    filtered = _NAME_FILTER.sub("", text.replace("&", "~"))
    return filtered or "unknown"


def stop_onestop_id(location: Point, name: str | None) -> str:
    return f"s-{geohash(location.x, location.y)}-{name_component(name)}"


def route_onestop_id(stops: Sequence[Point], name: str | None) -> str:
    return f"r-{common_geohash(stops)}-{name_component(name)}"


def operator_onestop_id(stops: Sequence[Point], name: str | None) -> str:
    return f"o-{common_geohash(stops)}-{name_component(name)}"


def _short_hash(value: str) -> str:
    return hashlib.md5(value.encode(), usedforsecurity=False).hexdigest()[:PATTERN_HASH_LENGTH]


def route_stop_pattern_onestop_id(
    route_id: str, stop_pattern: Sequence[str], geometry_wkt: str
) -> str:
    return f"{route_id}-{_short_hash(','.join(stop_pattern))}-{_short_hash(geometry_wkt)}"


def route_of_stop_pattern(onestop_id: str) -> str:
    """Return the route onestop id a route stop pattern id was derived from."""

    parts = onestop_id.split("-")
    if len(parts) < 5:  # noqa: PLR2004
        raise ValueError(f"Not a route stop pattern onestop id: {onestop_id}")
    return "-".join(parts[:-2])


def entity_type_of(onestop_id: str) -> EntityType:
    """Infer the entity kind from a onestop id prefix."""

    prefix, _, _ = onestop_id.partition("-")
    for entity_type, expected in PREFIXES.items():
        if prefix == expected:
            return entity_type
    raise ValueError(f"Unknown onestop id prefix: {onestop_id}")
