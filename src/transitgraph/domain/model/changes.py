"""Typed change descriptions carried by change payloads.

A change is decoded once, at the payload boundary, into one of the variants
below. ``attributes`` only contains the fields that were present in the
change. Absent fields are left untouched when the change is applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from transitgraph.domain.model.enums import ChangeAction, EntityType
from transitgraph.domain.model.transit import ScheduleStopPair

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True, slots=True, kw_only=True)
class BaseChange:
    ENTITY_TYPE: ClassVar[EntityType]

    action: ChangeAction
    attributes: Mapping[str, Any] = field(default_factory=dict[str, Any])
    issues_resolved: tuple[int, ...] = ()

    @property
    def entity_type(self) -> EntityType:
        return self.ENTITY_TYPE

    @property
    def is_destroy(self) -> bool:
        return self.action is ChangeAction.DESTROY


@dataclass(frozen=True, slots=True, kw_only=True)
class CanonicalChange(BaseChange):
    onestop_id: str
    identified_by: tuple[str, ...] = ()
    imported_from_feed_onestop_id: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class OperatorChange(CanonicalChange):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.OPERATOR

    serves: tuple[str, ...] = ()
    does_not_serve: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class StopChange(CanonicalChange):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.STOP

    served_by: tuple[str, ...] = ()
    not_served_by: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class RouteChange(CanonicalChange):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ROUTE

    operated_by: str | None = None
    serves: tuple[str, ...] = ()
    does_not_serve: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class RouteStopPatternChange(CanonicalChange):
    ENTITY_TYPE: ClassVar[EntityType] = EntityType.ROUTE_STOP_PATTERN

    traversed_by: str | None = None


@dataclass(frozen=True, slots=True, kw_only=True)
class ScheduleStopPairChange(BaseChange):
    """Schedule stop pairs have no onestop id; they are keyed by their key attributes."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.SCHEDULE_STOP_PAIR

    @property
    def key(self) -> tuple[Any, ...]:
        missing = [name for name in ("trip", "origin_onestop_id") if not self.attributes.get(name)]
        if missing:
            raise ValueError(f"Schedule stop pair change is missing {', '.join(missing)}")
        return tuple(self.attributes.get(name) for name in ScheduleStopPair.KEY_ATTRIBUTES)


type EntityChange = (
    OperatorChange | StopChange | RouteChange | RouteStopPatternChange | ScheduleStopPairChange
)
