"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class EntityType(StrEnum):
    """Typed-reference discriminator for polymorphic ownership (identifiers, serves, issues)."""

    OPERATOR = "operator"
    ROUTE = "route"
    STOP = "stop"
    ROUTE_STOP_PATTERN = "route_stop_pattern"
    SCHEDULE_STOP_PAIR = "schedule_stop_pair"

    @property
    def payload_key(self) -> str:
        """Camel-cased key used for this entity kind in change payloads."""
        head, *rest = self.value.split("_")
        return head + "".join(part.title() for part in rest)


class ChangeAction(StrEnum):
    CREATE_UPDATE = "createUpdate"
    DESTROY = "destroy"


class HistoryAction(StrEnum):
    UPDATE = "update"
    DESTROY = "destroy"


class VehicleType(StrEnum):
    TRAM = "tram"
    METRO = "metro"
    RAIL = "rail"
    BUS = "bus"
    FERRY = "ferry"
    CABLECAR = "cablecar"
    GONDOLA = "gondola"
    FUNICULAR = "funicular"
    TROLLEYBUS = "trolleybus"
    MONORAIL = "monorail"

    @classmethod
    def from_route_type(cls, route_type: int | None) -> VehicleType | None:
        if route_type is None:
            return None
        return _VEHICLE_TYPES_BY_ROUTE_TYPE.get(route_type)


_VEHICLE_TYPES_BY_ROUTE_TYPE: dict[int, VehicleType] = {
    0: VehicleType.TRAM,
    1: VehicleType.METRO,
    2: VehicleType.RAIL,
    3: VehicleType.BUS,
    4: VehicleType.FERRY,
    5: VehicleType.CABLECAR,
    6: VehicleType.GONDOLA,
    7: VehicleType.FUNICULAR,
    11: VehicleType.TROLLEYBUS,
    12: VehicleType.MONORAIL,
}


class IssueCategory(StrEnum):
    ROUTE_GEOMETRY = "route_geometry"
    FEED_FETCH = "feed_fetch"
    FEED_IMPORT = "feed_import"
    OTHER = "other"


class IssueType(StrEnum):
    STOP_POSITION_INACCURATE = "stop_position_inaccurate"
    STOP_RSP_DISTANCE_GAP = "stop_rsp_distance_gap"
    RSP_LINE_INACCURATE = "rsp_line_inaccurate"
    DISTANCE_CALCULATION_INACCURATE = "distance_calculation_inaccurate"

    FEED_FETCH_INVALID_URL = "feed_fetch_invalid_url"
    FEED_FETCH_INVALID_SOURCE = "feed_fetch_invalid_source"
    FEED_FETCH_INVALID_ZIP = "feed_fetch_invalid_zip"

    FEED_VERSION_MAINTENANCE_EXTEND = "feed_version_maintenance_extend"
    FEED_VERSION_MAINTENANCE_IMPORT = "feed_version_maintenance_import"

    OTHER = "other"

    @property
    def category(self) -> IssueCategory:
        return ISSUE_CATEGORIES[self]


ISSUE_CATEGORIES: dict[IssueType, IssueCategory] = {
    IssueType.STOP_POSITION_INACCURATE: IssueCategory.ROUTE_GEOMETRY,
    IssueType.STOP_RSP_DISTANCE_GAP: IssueCategory.ROUTE_GEOMETRY,
    IssueType.RSP_LINE_INACCURATE: IssueCategory.ROUTE_GEOMETRY,
    IssueType.DISTANCE_CALCULATION_INACCURATE: IssueCategory.ROUTE_GEOMETRY,
    IssueType.FEED_FETCH_INVALID_URL: IssueCategory.FEED_FETCH,
    IssueType.FEED_FETCH_INVALID_SOURCE: IssueCategory.FEED_FETCH,
    IssueType.FEED_FETCH_INVALID_ZIP: IssueCategory.FEED_FETCH,
    IssueType.FEED_VERSION_MAINTENANCE_EXTEND: IssueCategory.FEED_IMPORT,
    IssueType.FEED_VERSION_MAINTENANCE_IMPORT: IssueCategory.FEED_IMPORT,
    IssueType.OTHER: IssueCategory.OTHER,
}


def issue_types_in_category(category: IssueCategory | str) -> tuple[IssueType, ...]:
    """Return the issue types classified under ``category`` (static lookup)."""

    wanted = IssueCategory(category)
    return tuple(issue_type for issue_type, cat in ISSUE_CATEGORIES.items() if cat is wanted)
