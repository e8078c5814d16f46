"""Public domain model surface."""

from __future__ import annotations

from transitgraph.domain.model.changes import (
    BaseChange,
    CanonicalChange,
    EntityChange,
    OperatorChange,
    RouteChange,
    RouteStopPatternChange,
    ScheduleStopPairChange,
    StopChange,
)
from transitgraph.domain.model.changeset import ChangePayload, Changeset, ChangesetStatus
from transitgraph.domain.model.entity import CanonicalEntity, Entity, new_id
from transitgraph.domain.model.enums import (
    ChangeAction,
    EntityType,
    HistoryAction,
    IssueCategory,
    IssueType,
    VehicleType,
    issue_types_in_category,
)
from transitgraph.domain.model.history import OldEntity, OldServesLink
from transitgraph.domain.model.identifiers import EntityIdentifier, gtfs_identifier
from transitgraph.domain.model.issue import Binding, EntityWithIssue, Issue
from transitgraph.domain.model.relations import SERVES_PAIRS, ServesLink
from transitgraph.domain.model.transit import (
    CLASS_BY_ENTITY_TYPE,
    Operator,
    Route,
    RouteStopPattern,
    ScheduleStopPair,
    Stop,
    TransitEntity,
)
from transitgraph.domain.model.user import User

__all__ = [  # noqa: RUF022
    # base
    "Entity",
    "CanonicalEntity",
    "new_id",
    # transit
    "Operator",
    "Route",
    "Stop",
    "RouteStopPattern",
    "ScheduleStopPair",
    "TransitEntity",
    "CLASS_BY_ENTITY_TYPE",
    # identifiers and relations
    "EntityIdentifier",
    "gtfs_identifier",
    "ServesLink",
    "SERVES_PAIRS",
    # history
    "OldEntity",
    "OldServesLink",
    # changesets
    "Changeset",
    "ChangePayload",
    "ChangesetStatus",
    "BaseChange",
    "CanonicalChange",
    "EntityChange",
    "OperatorChange",
    "RouteChange",
    "StopChange",
    "RouteStopPatternChange",
    "ScheduleStopPairChange",
    # issues
    "Issue",
    "EntityWithIssue",
    "Binding",
    # users
    "User",
    # enums
    "ChangeAction",
    "EntityType",
    "HistoryAction",
    "IssueCategory",
    "IssueType",
    "VehicleType",
    "issue_types_in_category",
]
