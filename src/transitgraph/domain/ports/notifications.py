"""Ports for side effects dispatched after a changeset transaction commits."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID


@runtime_checkable
class ChangesetMailer(Protocol):
    def send_creation(self, changeset_id: int, recipient: str) -> None: ...

    def send_application(self, changeset_id: int, recipient: str) -> None: ...


@runtime_checkable
class StopConflationDispatcher(Protocol):
    """Hands stop ids to the external geocoding-conflation worker."""

    def dispatch(self, stop_ids: Sequence[UUID]) -> None: ...
