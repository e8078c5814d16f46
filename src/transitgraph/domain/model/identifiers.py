"""Raw-record cross references owned by typed references.

Important: an EntityIdentifier points to (owner_type, owner_id), not to a concrete FK.
Values are formatted as ``gtfs://{feed_onestop_id}/{type_code}/{raw_id}``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from transitgraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID


TYPE_CODES: Final[dict[EntityType, str]] = {
    EntityType.OPERATOR: "o",
    EntityType.STOP: "s",
    EntityType.ROUTE: "r",
}


@dataclass(eq=False, kw_only=True)
class EntityIdentifier:
    value: str

    owner_type: EntityType
    owner_id: UUID

    created_at: datetime | None = None


def gtfs_identifier(feed_onestop_id: str, entity_type: EntityType, raw_id: str) -> str:
    return f"gtfs://{feed_onestop_id}/{TYPE_CODES[entity_type]}/{raw_id}"
