"""The ``serves`` relation between canonical entities.

Rows point to their endpoints by (type, onestop id) so that they survive
identity-preserving updates. Supported pairs: operator→route, operator→stop
and route→stop. ``Stop.servedBy`` is the inverse view of the same rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from transitgraph.domain.model.enums import EntityType

if TYPE_CHECKING:
    from datetime import datetime

SERVES_PAIRS: Final[frozenset[tuple[EntityType, EntityType]]] = frozenset(
    {
        (EntityType.OPERATOR, EntityType.ROUTE),
        (EntityType.OPERATOR, EntityType.STOP),
        (EntityType.ROUTE, EntityType.STOP),
    }
)


@dataclass(eq=False, kw_only=True)
class ServesLink:
    server_type: EntityType
    server_onestop_id: str
    served_type: EntityType
    served_onestop_id: str

    created_in_changeset_id: int | None = None
    created_at: datetime | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        if (self.server_type, self.served_type) not in SERVES_PAIRS:
            raise ValueError(f"{self.server_type} cannot serve {self.served_type}")

    @property
    def endpoints(self) -> tuple[EntityType, str, EntityType, str]:
        return (
            self.server_type,
            self.server_onestop_id,
            self.served_type,
            self.served_onestop_id,
        )
