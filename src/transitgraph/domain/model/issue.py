"""Data-quality issues bound to (entity, attribute) pairs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from transitgraph.domain.model.enums import EntityType, IssueType

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

type Binding = tuple[EntityType, str, str | None]


@dataclass(eq=False, kw_only=True)
class EntityWithIssue:
    """Binds an issue to an entity, optionally narrowed to one attribute."""

    entity_type: EntityType
    entity_onestop_id: str
    entity_attribute: str | None = None
    id: int | None = None

    @property
    def binding(self) -> Binding:
        return (self.entity_type, self.entity_onestop_id, self.entity_attribute)

    def matches(self, entity_type: EntityType, onestop_id: str, attribute: str) -> bool:
        if self.entity_type != entity_type or self.entity_onestop_id != onestop_id:
            return False
        return self.entity_attribute is None or self.entity_attribute == attribute


@dataclass(eq=False, kw_only=True)
class Issue:
    """A finding raised by a changeset.

    ``resolved_by_changeset_id`` is only set when a changeset declared the
    issue resolved. ``superseded_by_changeset_id`` records the last changeset
    that invalidated the issue as a side effect, leaving it open.
    """

    issue_type: IssueType
    details: str | None = None
    open: bool = True
    created_by_changeset_id: int | None = None
    resolved_by_changeset_id: int | None = None
    superseded_by_changeset_id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    _entities_with_issues: list[EntityWithIssue] = field(
        default_factory=list["EntityWithIssue"], repr=False, init=False
    )

    @property
    def entities_with_issues(self) -> tuple[EntityWithIssue, ...]:
        return tuple(self._entities_with_issues)

    @property
    def bindings(self) -> frozenset[Binding]:
        return frozenset(item.binding for item in self._entities_with_issues)

    @property
    def is_active(self) -> bool:
        """Open and not yet invalidated by a later changeset."""
        return self.open and self.superseded_by_changeset_id is None

    def bind(
        self, entity_type: EntityType, onestop_id: str, attribute: str | None = None
    ) -> EntityWithIssue:
        item = EntityWithIssue(
            entity_type=entity_type, entity_onestop_id=onestop_id, entity_attribute=attribute
        )
        self._entities_with_issues.append(item)
        return item

    def bind_all(self, bindings: Iterable[Binding]) -> None:
        for entity_type, onestop_id, attribute in bindings:
            self.bind(entity_type, onestop_id, attribute)

    def is_bound_to(self, entity_type: EntityType, onestop_id: str, attribute: str) -> bool:
        return any(
            item.matches(entity_type, onestop_id, attribute) for item in self._entities_with_issues
        )

    def resolve(self, changeset_id: int | None) -> None:
        self.open = False
        self.resolved_by_changeset_id = changeset_id

    def supersede(self, changeset_id: int | None) -> None:
        self.superseded_by_changeset_id = changeset_id

    def as_log_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "issue_type": str(self.issue_type),
            "created_by_changeset_id": self.created_by_changeset_id,
            "resolved_by_changeset_id": self.resolved_by_changeset_id,
            "superseded_by_changeset_id": self.superseded_by_changeset_id,
            "open": self.open,
        }
