"""Changesets: atomic, ordered batches of entity changes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from transitgraph.domain.model.changes import EntityChange
    from transitgraph.domain.model.user import User


class ChangesetStatus(StrEnum):
    PENDING = "pending"
    APPLYING = "applying"
    APPLIED = "applied"
    FAILED = "failed"


@dataclass(eq=False, kw_only=True)
class ChangePayload:
    """One chunk of a changeset's change list."""

    changes: list[EntityChange] = field(default_factory=list["EntityChange"])
    position: int = 0
    created_at: datetime | None = None
    id: int | None = None


@dataclass(eq=False, kw_only=True)
class Changeset:
    notes: str | None = None
    applied: bool = False
    applied_at: datetime | None = None
    imported_from_feed_onestop_id: str | None = None
    status: ChangesetStatus = ChangesetStatus.PENDING
    user: User | None = None
    created_at: datetime | None = None
    id: int | None = None

    _payloads: list[ChangePayload] = field(
        default_factory=list["ChangePayload"], repr=False, init=False
    )

    @property
    def is_import(self) -> bool:
        """Import changesets come from automated feed imports and respect human edits."""
        return self.imported_from_feed_onestop_id is not None

    @property
    def payloads(self) -> tuple[ChangePayload, ...]:
        return tuple(sorted(self._payloads, key=lambda payload: payload.position))

    def add_payload(
        self, changes: Iterable[EntityChange], *, created_at: datetime | None = None
    ) -> ChangePayload:
        position = max((payload.position for payload in self._payloads), default=-1) + 1
        payload = ChangePayload(changes=list(changes), position=position, created_at=created_at)
        self._payloads.append(payload)
        return payload

    def changes(self) -> Iterable[EntityChange]:
        """All changes in stored order."""
        for payload in self.payloads:
            yield from payload.changes

    def clear_payloads(self) -> None:
        self._payloads.clear()

    def begin_applying(self) -> None:
        if self.applied:
            raise ValueError(f"Changeset {self.id} was already applied")
        self.status = ChangesetStatus.APPLYING

    def mark_applied(self, applied_at: datetime) -> None:
        if self.applied:
            raise ValueError(f"Changeset {self.id} was already applied")
        self.applied = True
        self.applied_at = applied_at
        self.status = ChangesetStatus.APPLIED

    def mark_failed(self) -> None:
        """Record a rolled back attempt; the changeset may be retried."""
        if not self.applied:
            self.status = ChangesetStatus.FAILED
