"""Geometry utilities shared by the resolver and the changeset engine.

All geometries are shapely values in (lon, lat) order. GeoJSON and WKT only
appear at the boundary, through the codec functions below. Metric lengths are
geodesic on the WGS84 ellipsoid.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Final

import shapely
from pyproj import Geod
from shapely.errors import GEOSException, GeometryTypeError
from shapely.geometry import LineString, MultiLineString, MultiPoint, Point, mapping, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import substring

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

GEOD: Final[Geod] = Geod(ellps="WGS84")


# Construction ------------------------------------------------------------------


def point(lon: float, lat: float) -> Point:
    return Point(float(lon), float(lat))


def line(coordinates: Iterable[tuple[float, float]]) -> LineString:
    coords = [(float(lon), float(lat)) for lon, lat in coordinates]
    if len(coords) < 2:  # noqa: PLR2004
        raise ValueError("A line needs at least two coordinates")
    return LineString(coords)


def multi_line(lines: Iterable[LineString]) -> MultiLineString | None:
    """Combine lines into one multi-line, dropping exact duplicates."""

    distinct: dict[tuple[tuple[float, ...], ...], LineString] = {}
    for item in lines:
        distinct.setdefault(tuple(tuple(coord) for coord in item.coords), item)
    if not distinct:
        return None
    return MultiLineString(list(distinct.values()))


def line_parts(geometry: BaseGeometry) -> list[LineString]:
    if isinstance(geometry, LineString):
        return [geometry]
    if isinstance(geometry, MultiLineString):
        return list(geometry.geoms)
    return []


def centroid(points: Sequence[Point]) -> Point:
    return MultiPoint(points).centroid


def convex_hull(points: Sequence[Point]) -> BaseGeometry | None:
    """Convex hull of ``points``.

    Degenerate inputs stay valid: one distinct point gives a Point, two give a
    LineString. An empty input gives ``None``.
    """

    if not points:
        return None
    return MultiPoint(points).convex_hull


# Codecs ------------------------------------------------------------------------


def to_geojson(geometry: BaseGeometry) -> dict[str, Any]:
    return dict(mapping(geometry))


def from_geojson(data: Mapping[str, Any]) -> BaseGeometry:
    try:
        return shape(data)
    except (KeyError, TypeError, AttributeError, GeometryTypeError) as exc:
        raise ValueError(f"Invalid GeoJSON geometry: {data!r}") from exc


def to_wkt(geometry: BaseGeometry) -> str:
    return shapely.to_wkt(geometry, rounding_precision=-1, trim=True)


def from_wkt(text: str) -> BaseGeometry:
    try:
        return shapely.from_wkt(text)
    except GEOSException as exc:
        raise ValueError(f"Invalid WKT geometry: {text!r}") from exc


def is_geometry(value: object) -> bool:
    return isinstance(value, BaseGeometry)


def same(a: BaseGeometry | None, b: BaseGeometry | None) -> bool:
    """Exact equality that treats two missing geometries as equal."""

    if a is None or b is None:
        return a is b
    return bool(shapely.equals_exact(a, b, tolerance=0.0))


def from_any(value: str | Mapping[str, Any]) -> BaseGeometry:
    """Decode either a WKT string or a GeoJSON mapping."""

    if isinstance(value, str):
        return from_wkt(value)
    return from_geojson(value)


# Measurement -------------------------------------------------------------------


def distance_m(a: Point, b: Point) -> float:
    _, _, distance = GEOD.inv(a.x, a.y, b.x, b.y)
    return float(distance)


def length_m(geometry: BaseGeometry) -> float:
    return float(GEOD.geometry_length(geometry))


def project_along(path: LineString, target: Point, start: float = 0.0) -> tuple[float, Point]:
    """Project ``target`` onto ``path`` at or after offset ``start``.

    Returns the offset along the path (in coordinate units) and the projected
    point. Offsets never go backwards past ``start``.
    """

    start = min(max(start, 0.0), path.length)
    remaining = substring(path, start, path.length)
    if not isinstance(remaining, LineString) or remaining.length == 0:
        return start, path.interpolate(start)
    offset = start + remaining.project(target)
    return offset, path.interpolate(offset)


def distance_along_m(path: LineString, offset: float) -> float:
    """Geodesic length of ``path`` from its start up to ``offset``."""

    if offset <= 0:
        return 0.0
    prefix = substring(path, 0.0, min(offset, path.length))
    if not isinstance(prefix, LineString):
        return 0.0
    return length_m(prefix)
