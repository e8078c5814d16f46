"""Errors raised while applying changesets.

Every error carries structured attributes so callers can report them without
parsing messages. Raising any of them inside a unit of work rolls the whole
changeset back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from transitgraph.domain.model import EntityType


class ChangesetError(Exception):
    """Base class for changeset failures."""

    def __init__(
        self,
        message: str,
        *,
        changeset_id: int | None = None,
        entity_type: EntityType | None = None,
        onestop_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.changeset_id = changeset_id
        self.entity_type = entity_type
        self.onestop_id = onestop_id

    def as_dict(self) -> dict[str, object]:
        return {
            "error": type(self).__name__,
            "message": str(self),
            "changeset_id": self.changeset_id,
            "entity_type": str(self.entity_type) if self.entity_type else None,
            "onestop_id": self.onestop_id,
        }


class ChangesetAlreadyAppliedError(ChangesetError):
    def __init__(self, changeset_id: int | None) -> None:
        super().__init__(f"Changeset {changeset_id} was already applied", changeset_id=changeset_id)


class ChangesetNotFoundError(ChangesetError):
    def __init__(self, changeset_id: int) -> None:
        super().__init__(f"Changeset {changeset_id} does not exist", changeset_id=changeset_id)


class InvalidChangeError(ChangesetError):
    """A change entry is well-formed JSON but cannot be applied as written."""


class EntityNotFoundError(ChangesetError):
    def __init__(
        self, entity_type: EntityType, onestop_id: str, *, changeset_id: int | None = None
    ) -> None:
        super().__init__(
            f"{entity_type} {onestop_id} does not exist",
            changeset_id=changeset_id,
            entity_type=entity_type,
            onestop_id=onestop_id,
        )


class ReferentialIntegrityError(ChangesetError):
    """A live entity references something that does not exist after the changeset."""

    def __init__(
        self,
        entity_type: EntityType,
        onestop_id: str,
        *,
        attribute: str,
        reference: str,
        changeset_id: int | None = None,
    ) -> None:
        super().__init__(
            f"{entity_type} {onestop_id}: {attribute} references missing {reference}",
            changeset_id=changeset_id,
            entity_type=entity_type,
            onestop_id=onestop_id,
        )
        self.attribute = attribute
        self.reference = reference


class StillReferencedError(ChangesetError):
    """An entity marked for destruction is still referenced by live rows."""

    def __init__(
        self,
        entity_type: EntityType,
        onestop_id: str,
        *,
        referenced_by: Sequence[str],
        changeset_id: int | None = None,
    ) -> None:
        super().__init__(
            f"Cannot destroy {entity_type} {onestop_id}: still referenced by "
            + ", ".join(referenced_by),
            changeset_id=changeset_id,
            entity_type=entity_type,
            onestop_id=onestop_id,
        )
        self.referenced_by = tuple(referenced_by)


class UntruthfulResolutionError(ChangesetError):
    """A changeset declared issues resolved that it did not actually resolve."""

    def __init__(self, issue_ids: Sequence[int], *, changeset_id: int | None = None) -> None:
        super().__init__(
            "Changeset did not resolve declared issues: "
            + ", ".join(str(issue_id) for issue_id in issue_ids),
            changeset_id=changeset_id,
        )
        self.issue_ids = tuple(issue_ids)

    def as_dict(self) -> dict[str, object]:
        data = super().as_dict()
        data["issue_ids"] = list(self.issue_ids)
        return data


class ConcurrentModificationError(ChangesetError):
    """Another transaction changed the same entities first."""
