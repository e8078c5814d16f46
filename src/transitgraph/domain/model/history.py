"""Historical records kept when changesets overwrite or remove state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from transitgraph.domain.model.enums import EntityType, HistoryAction

if TYPE_CHECKING:
    from datetime import datetime

    from transitgraph.domain.model.entity import CanonicalEntity
    from transitgraph.domain.model.relations import ServesLink


@dataclass(eq=False, kw_only=True)
class OldEntity:
    """Last known state of an entity version that a changeset superseded or destroyed."""

    entity_type: EntityType
    onestop_id: str
    version: int
    action: HistoryAction
    attributes: dict[str, Any] = field(default_factory=dict[str, Any])
    identifiers: list[str] = field(default_factory=list[str])
    changeset_id: int | None = None
    recorded_at: datetime | None = None
    id: int | None = None

    @classmethod
    def capture(
        cls,
        entity: CanonicalEntity,
        *,
        action: HistoryAction,
        changeset_id: int | None,
        recorded_at: datetime,
    ) -> OldEntity:
        return cls(
            entity_type=entity.entity_type,
            onestop_id=entity.onestop_id,
            version=entity.version,
            action=action,
            attributes=entity.snapshot(),
            identifiers=list(entity.identifiers),
            changeset_id=changeset_id,
            recorded_at=recorded_at,
        )


@dataclass(eq=False, kw_only=True)
class OldServesLink:
    server_type: EntityType
    server_onestop_id: str
    served_type: EntityType
    served_onestop_id: str

    destroyed_in_changeset_id: int | None = None
    destroyed_at: datetime | None = None
    id: int | None = None

    @classmethod
    def retire(
        cls, link: ServesLink, *, changeset_id: int | None, destroyed_at: datetime
    ) -> OldServesLink:
        return cls(
            server_type=link.server_type,
            server_onestop_id=link.server_onestop_id,
            served_type=link.served_type,
            served_onestop_id=link.served_onestop_id,
            destroyed_in_changeset_id=changeset_id,
            destroyed_at=destroyed_at,
        )
