"""
Base building blocks:
identity, entity_type contract, onestop-addressed canonical entities.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Protocol, Self
from uuid import UUID, uuid4

from transitgraph.domain.geometry import to_wkt
from transitgraph.domain.model.identifiers import EntityIdentifier

if TYPE_CHECKING:
    from datetime import datetime

    from shapely.geometry.base import BaseGeometry

    from transitgraph.domain.model.enums import EntityType


def new_id() -> UUID:
    return uuid4()


class HasEntityType(Protocol):
    """Structural contract for typed reference joins/dispatch."""

    ENTITY_TYPE: ClassVar[EntityType]

    @property
    def entity_type(self) -> EntityType: ...


@dataclass(eq=False, kw_only=True)
class Entity:
    """Internal identity exists immediately in the domain."""

    id: UUID = field(default_factory=new_id)

    # class-level discriminator; subclasses must override
    ENTITY_TYPE: ClassVar[EntityType]

    @property
    def entity_type(self) -> EntityType:
        return self.ENTITY_TYPE


@dataclass(eq=False, kw_only=True)
class CanonicalEntity(Entity):
    """An entity addressed by its onestop id and versioned by changesets.

    ``STICKY_ATTRIBUTES`` lists the attributes a human may edit and that an
    automated import must not silently revert afterwards. ``edited_attributes``
    is always a subset of it.
    """

    onestop_id: str
    name: str | None = None
    geometry: BaseGeometry | None = None
    tags: dict[str, str] = field(default_factory=dict[str, str])
    version: int = 1
    edited_attributes: set[str] = field(default_factory=set[str])
    imported_from_feed_onestop_id: str | None = None
    created_or_updated_in_changeset_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    _identifiers: list[EntityIdentifier] = field(
        default_factory=list["EntityIdentifier"], repr=False, init=False
    )

    STICKY_ATTRIBUTES: ClassVar[frozenset[str]] = frozenset()
    ATTRIBUTES: ClassVar[tuple[str, ...]] = ("name", "geometry", "tags")

    # Identifiers ---------------------------------------------------------------

    @property
    def identifiers(self) -> tuple[str, ...]:
        return tuple(identifier.value for identifier in self._identifiers)

    def add_identifier(self, value: str) -> bool:
        """Attach a raw-record cross reference; duplicates are ignored."""
        if value in self.identifiers:
            return False
        self._identifiers.append(
            EntityIdentifier(owner_type=self.entity_type, owner_id=self.id, value=value)
        )
        return True

    # Changeset support ----------------------------------------------------------

    def protects(self, attribute: str, *, from_import: bool) -> bool:
        """Whether an import must leave ``attribute`` alone because a human edited it."""
        return from_import and attribute in self.edited_attributes

    def assign(self, attribute: str, value: Any, *, from_import: bool) -> bool:  # noqa: ANN401
        """Set ``attribute`` unless an import would revert a human edit.

        Returns whether the value was written.
        """
        if attribute not in self.ATTRIBUTES:
            raise ValueError(f"{type(self).__name__} has no assignable attribute {attribute!r}")
        if self.protects(attribute, from_import=from_import):
            return False
        setattr(self, attribute, value)
        if not from_import and attribute in self.STICKY_ATTRIBUTES:
            # reassign so the ORM sees the change
            self.edited_attributes = self.edited_attributes | {attribute}
        return True

    def bump_version(self) -> None:
        self.version += 1

    def snapshot(self) -> dict[str, Any]:
        """Return a JSON-friendly copy of the assignable state."""
        state: dict[str, Any] = {}
        for attribute in self.ATTRIBUTES:
            value = getattr(self, attribute)
            if attribute == "geometry":
                value = to_wkt(value) if value is not None else None
            state[attribute] = value
        state["edited_attributes"] = sorted(self.edited_attributes)
        return state

    def detached_copy(self) -> Self:
        """Copy identity and attributes into a fresh, unpersisted instance."""
        copy = type(self)(onestop_id=self.onestop_id)
        copy.id = self.id
        for attribute in self.ATTRIBUTES:
            setattr(copy, attribute, getattr(self, attribute))
        copy.version = self.version
        copy.imported_from_feed_onestop_id = self.imported_from_feed_onestop_id
        return copy
