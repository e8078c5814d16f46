"""SQLAlchemy mapping metadata for the transitgraph domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, date, datetime
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    and_,
    orm,
)
from sqlalchemy.orm import configure_mappers, relationship
from shapely.geometry.base import BaseGeometry

from transitgraph.adapters.payloads import decode_payload, encode_changes_json
from transitgraph.domain import geometry
from transitgraph.domain.model import (
    ChangePayload,
    Changeset,
    ChangesetStatus,
    EntityIdentifier,
    EntityType,
    EntityWithIssue,
    HistoryAction,
    Issue,
    IssueType,
    OldEntity,
    OldServesLink,
    Operator,
    Route,
    RouteStopPattern,
    ScheduleStopPair,
    ServesLink,
    Stop,
    User,
    VehicleType,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

    from transitgraph.domain.model import EntityChange

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class GeometryType(TypeDecorator[BaseGeometry]):
    """Shapely geometries stored as WKT text."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: BaseGeometry | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return geometry.to_wkt(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> BaseGeometry | None:
        _ = dialect
        if value is None:
            return None
        return geometry.from_wkt(value)

    def compare_values(self, x: Any, y: Any) -> bool:  # noqa: ANN401
        return geometry.same(x, y)


class JSONEncodedList(TypeDecorator[list[Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[Any]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        return cast(list[Any], loaded)


class JSONEncodedDict(TypeDecorator[dict[str, Any]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: dict[str, Any] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(value, sort_keys=True)

    def process_result_value(self, value: str | None, dialect: Dialect) -> dict[str, Any]:
        _ = dialect
        if value is None:
            return {}
        loaded = json.loads(value)
        if not isinstance(loaded, dict):
            return {}
        return cast(dict[str, Any], loaded)


class StringSetType(TypeDecorator[set[str]]):
    impl = String
    cache_ok = True

    def process_bind_param(self, value: set[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(sorted(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> set[str]:
        _ = dialect
        if value is None:
            return set()
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return set()
        items = cast(list[Any], loaded)
        return {item for item in items if isinstance(item, str)}


class DateListType(TypeDecorator[list[date]]):
    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[date] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([item.isoformat() for item in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[date]:
        _ = dialect
        if value is None:
            return []
        loaded = cast(list[str], json.loads(value))
        return [date.fromisoformat(item) for item in loaded]


class ChangeListType(TypeDecorator[list["EntityChange"]]):
    """Typed changes stored in their JSON wire form."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[EntityChange] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return encode_changes_json(value)

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[EntityChange]:
        _ = dialect
        if value is None:
            return []
        return decode_payload(value)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _canonical_columns() -> list[Column[Any]]:
    return [
        Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
        Column("onestop_id", String, nullable=False, unique=True),
        Column("name", String, nullable=True),
        Column("geometry", GeometryType(), nullable=True),
        Column("tags", JSONEncodedDict(), nullable=False, default=dict),
        Column("version", Integer, nullable=False, default=1),
        Column("edited_attributes", StringSetType(), nullable=False, default=set),
        Column("imported_from_feed_onestop_id", String, nullable=True),
        Column("created_or_updated_in_changeset_id", Integer, nullable=True),
        Column("created_at", UTCDateTime(), nullable=True),
        Column("updated_at", UTCDateTime(), nullable=True),
    ]


# Canonical entities -------------------------------------------------------------

operator_table = Table(
    "operator",
    mapper_registry.metadata,
    *_canonical_columns(),
    Column("short_name", String, nullable=True),
    Column("website", String, nullable=True),
    Column("timezone", String, nullable=True),
    Column("country", String, nullable=True),
    Column("state", String, nullable=True),
    Column("metro", String, nullable=True),
)

stop_table = Table(
    "stop",
    mapper_registry.metadata,
    *_canonical_columns(),
    Column("timezone", String, nullable=True),
    Column("wheelchair_boarding", Boolean, nullable=True),
)

route_table = Table(
    "route",
    mapper_registry.metadata,
    *_canonical_columns(),
    Column("vehicle_type", Enum(VehicleType, native_enum=False), nullable=True),
    Column("color", String, nullable=True),
    Column("operated_by_onestop_id", String, nullable=True, index=True),
)

route_stop_pattern_table = Table(
    "route_stop_pattern",
    mapper_registry.metadata,
    *_canonical_columns(),
    Column("route_onestop_id", String, nullable=True, index=True),
    Column("stop_pattern", JSONEncodedList(), nullable=False, default=list),
    Column("stop_distances", JSONEncodedList(), nullable=False, default=list),
    Column("is_generated", Boolean, nullable=False, default=False),
    Column("trips", JSONEncodedList(), nullable=False, default=list),
)

schedule_stop_pair_table = Table(
    "schedule_stop_pair",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("imported_from_feed_onestop_id", String, nullable=True),
    Column("trip", String, nullable=False),
    Column("origin_onestop_id", String, nullable=False, index=True),
    Column("origin_departure_time", String, nullable=True),
    Column("destination_onestop_id", String, nullable=True, index=True),
    Column("route_onestop_id", String, nullable=True, index=True),
    Column("route_stop_pattern_onestop_id", String, nullable=True, index=True),
    Column("operator_onestop_id", String, nullable=True, index=True),
    Column("origin_timezone", String, nullable=True),
    Column("destination_timezone", String, nullable=True),
    Column("origin_arrival_time", String, nullable=True),
    Column("destination_arrival_time", String, nullable=True),
    Column("destination_departure_time", String, nullable=True),
    Column("trip_headsign", String, nullable=True),
    Column("trip_short_name", String, nullable=True),
    Column("wheelchair_accessible", Integer, nullable=False, default=0),
    Column("bikes_allowed", Integer, nullable=False, default=0),
    Column("pickup_type", Integer, nullable=False, default=0),
    Column("drop_off_type", Integer, nullable=False, default=0),
    Column("origin_dist_traveled", Float, nullable=True),
    Column("destination_dist_traveled", Float, nullable=True),
    Column("service_start_date", Date, nullable=True),
    Column("service_end_date", Date, nullable=True),
    Column("service_days_of_week", JSONEncodedList(), nullable=False, default=list),
    Column("service_added_dates", DateListType(), nullable=False, default=list),
    Column("service_except_dates", DateListType(), nullable=False, default=list),
    Column("created_or_updated_in_changeset_id", Integer, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
    UniqueConstraint(
        "imported_from_feed_onestop_id",
        "trip",
        "origin_onestop_id",
        "origin_departure_time",
        name="uq_schedule_stop_pair_key",
    ),
)

# Relations and identifiers ------------------------------------------------------

entity_identifier_table = Table(
    "entity_identifier",
    mapper_registry.metadata,
    Column("owner_type", Enum(EntityType, native_enum=False), primary_key=True),
    Column("owner_id", UUIDColumnType, primary_key=True),
    Column("value", String, primary_key=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Index("ix_entity_identifier_value", "value"),
)

serves_table = Table(
    "serves",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("server_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("server_onestop_id", String, nullable=False),
    Column("served_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("served_onestop_id", String, nullable=False),
    Column("created_in_changeset_id", Integer, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    UniqueConstraint(
        "server_type",
        "server_onestop_id",
        "served_type",
        "served_onestop_id",
        name="uq_serves_endpoints",
    ),
    Index("ix_serves_served", "served_type", "served_onestop_id"),
)

# History ------------------------------------------------------------------------

old_entity_table = Table(
    "old_entity",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("onestop_id", String, nullable=False, index=True),
    Column("version", Integer, nullable=False),
    Column("action", Enum(HistoryAction, native_enum=False), nullable=False),
    Column("attributes", JSONEncodedDict(), nullable=False, default=dict),
    Column("identifiers", JSONEncodedList(), nullable=False, default=list),
    Column("changeset_id", Integer, nullable=True),
    Column("recorded_at", UTCDateTime(), nullable=True),
)

old_serves_table = Table(
    "old_serves",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("server_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("server_onestop_id", String, nullable=False, index=True),
    Column("served_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("served_onestop_id", String, nullable=False, index=True),
    Column("destroyed_in_changeset_id", Integer, nullable=True),
    Column("destroyed_at", UTCDateTime(), nullable=True),
)

# Changesets, users and issues ---------------------------------------------------

user_table = Table(
    "user_account",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("email", String, nullable=False, unique=True),
    Column("name", String, nullable=True),
    Column("admin", Boolean, nullable=False, default=False),
    Column("created_at", UTCDateTime(), nullable=True),
)

changeset_table = Table(
    "changeset",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("notes", Text, nullable=True),
    Column("applied", Boolean, nullable=False, default=False),
    Column("applied_at", UTCDateTime(), nullable=True),
    Column("imported_from_feed_onestop_id", String, nullable=True),
    Column("status", Enum(ChangesetStatus, native_enum=False), nullable=False),
    Column(
        "user_id",
        UUIDColumnType,
        ForeignKey("user_account.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("created_at", UTCDateTime(), nullable=True),
)

change_payload_table = Table(
    "change_payload",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "changeset_id",
        Integer,
        ForeignKey("changeset.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("position", Integer, nullable=False),
    Column("changes", ChangeListType(), nullable=False),
    Column("created_at", UTCDateTime(), nullable=True),
)

issue_table = Table(
    "issue",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("issue_type", Enum(IssueType, native_enum=False), nullable=False, index=True),
    Column("details", Text, nullable=True),
    Column("open", Boolean, nullable=False, default=True),
    Column("created_by_changeset_id", Integer, nullable=True),
    Column("resolved_by_changeset_id", Integer, nullable=True),
    Column("superseded_by_changeset_id", Integer, nullable=True),
    Column("created_at", UTCDateTime(), nullable=True),
    Column("updated_at", UTCDateTime(), nullable=True),
)

entity_with_issue_table = Table(
    "entity_with_issue",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "issue_id", Integer, ForeignKey("issue.id", ondelete="CASCADE"), nullable=False, index=True
    ),
    Column("entity_type", Enum(EntityType, native_enum=False), nullable=False),
    Column("entity_onestop_id", String, nullable=False),
    Column("entity_attribute", String, nullable=True),
    Index("ix_entity_with_issue_entity", "entity_type", "entity_onestop_id"),
)

TABLE_BY_ENTITY_TYPE: dict[EntityType, Table] = {
    EntityType.OPERATOR: operator_table,
    EntityType.STOP: stop_table,
    EntityType.ROUTE: route_table,
    EntityType.ROUTE_STOP_PATTERN: route_stop_pattern_table,
    EntityType.SCHEDULE_STOP_PAIR: schedule_stop_pair_table,
}


def _identifiers_relationship(
    entity_table: Table, entity_type: EntityType
) -> orm.RelationshipProperty[EntityIdentifier]:
    return relationship(
        EntityIdentifier,
        cascade="all, delete-orphan",
        primaryjoin=and_(
            entity_identifier_table.c.owner_id == entity_table.c.id,
            entity_identifier_table.c.owner_type == entity_type,
        ),
        foreign_keys=[entity_identifier_table.c.owner_id],
        order_by=entity_identifier_table.c.value,
        overlaps="_identifiers",
    )


def _map_canonical(entity_cls: type[Any], entity_table: Table) -> None:
    mapper_registry.map_imperatively(
        entity_cls,
        entity_table,
        properties={
            "_identifiers": _identifiers_relationship(entity_table, entity_cls.ENTITY_TYPE),
        },
        version_id_col=entity_table.c.version,
        version_id_generator=False,
    )


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    _map_canonical(Operator, operator_table)
    _map_canonical(Stop, stop_table)
    _map_canonical(Route, route_table)
    _map_canonical(RouteStopPattern, route_stop_pattern_table)

    mapper_registry.map_imperatively(ScheduleStopPair, schedule_stop_pair_table)
    mapper_registry.map_imperatively(EntityIdentifier, entity_identifier_table)
    mapper_registry.map_imperatively(ServesLink, serves_table)
    mapper_registry.map_imperatively(OldEntity, old_entity_table)
    mapper_registry.map_imperatively(OldServesLink, old_serves_table)
    mapper_registry.map_imperatively(User, user_table)

    mapper_registry.map_imperatively(ChangePayload, change_payload_table)
    mapper_registry.map_imperatively(
        Changeset,
        changeset_table,
        properties={
            "user": relationship(User, lazy="joined"),
            "_payloads": relationship(
                ChangePayload,
                cascade="all, delete-orphan",
                order_by=change_payload_table.c.position,
            ),
        },
    )

    mapper_registry.map_imperatively(EntityWithIssue, entity_with_issue_table)
    mapper_registry.map_imperatively(
        Issue,
        issue_table,
        properties={
            "_entities_with_issues": relationship(
                EntityWithIssue,
                cascade="all, delete-orphan",
                order_by=entity_with_issue_table.c.id,
                lazy="selectin",
            ),
        },
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
